"""Strip fabricated community references from content generated without evidence."""

from dataclasses import dataclass, field
from uuid import UUID

from app.core.llm import parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_generation import EvidenceLevel
from app.services.llm_gateway import generate

logger = get_logger(__name__)

FABRICATION_PROMPT = """This content was generated WITHOUT any real community evidence. Find every fabricated
community reference in it: quotes attributed to practitioners, references to forum threads, claims about
community sentiment, or citations of posts on Reddit, Hacker News, Stack Overflow, GitHub or other
community sites.

## Content
{content}

## Instructions
1. List each fabricated reference as a short description
2. Produce a cleaned version with those references removed, or replaced with claims grounded in the
   product docs or a "[Needs community validation]" marker
3. Keep every factual product claim and genuine insight
4. Keep the same structure and format

Return JSON:
{{
  "fabricatedReferences": ["<short description of each fabricated reference>"],
  "cleanedContent": "<the content with fabrications removed or replaced>"
}}"""


@dataclass
class GroundingValidation:
    content: str
    fabricated_references: list[str] = field(default_factory=list)

    @property
    def fabrication_stripped(self) -> bool:
        return bool(self.fabricated_references)


async def validate_grounding(
    content: str,
    evidence_level: EvidenceLevel,
    job_id: UUID | str | None = None,
) -> GroundingValidation:
    """
    Check product-only content for invented community references and strip them.

    Strong and partial evidence skip the check. Fails open: any error returns
    the content unchanged.
    """
    if evidence_level != EvidenceLevel.PRODUCT_ONLY:
        return GroundingValidation(content)

    try:
        response = await generate(
            FABRICATION_PROMPT.format(content=content),
            temperature=0.3,
            max_tokens=8000,
            workflow="generation",
            chain="validate_grounding",
            job_id=job_id,
        )
        parsed = parse_llm_json_dict(response.text)
    except Exception as e:
        logger.error(
            f"Fabrication detection failed, keeping content as-is: {e}",
            extra={"job_id": str(job_id) if job_id else None},
        )
        return GroundingValidation(content)

    references = [str(r) for r in parsed.get("fabricatedReferences") or [] if str(r).strip()]
    cleaned = str(parsed.get("cleanedContent") or "").strip()
    if not references or not cleaned:
        return GroundingValidation(content)

    logger.warning(
        f"Stripped {len(references)} fabricated community references from product-only content",
        extra={"job_id": str(job_id) if job_id else None, "patterns": references[:5]},
    )
    return GroundingValidation(cleaned, references)

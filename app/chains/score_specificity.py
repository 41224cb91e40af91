"""Specificity scoring against grounding context (product capabilities, claims)."""

from uuid import UUID

from app.core.config import get_settings
from app.core.llm import clamp_score, parse_llm_json_dict
from app.core.schemas_scoring import SpecificityAnalysis
from app.services.llm_gateway import generate

SPECIFICITY_PROMPT = """Analyze this messaging content for specificity: how concrete and specific are the claims?

CONTENT:
{content}
{grounding}

Evaluate:
1. Does it reference specific product capabilities by name?
2. Does it include numbers, metrics, or quantifiable outcomes?
3. Does it describe specific practitioner scenarios?
4. Are claims backed by evidence or just asserted?
5. Could you swap in any product name and it would still work? (bad sign)

Respond with JSON only:
{{
  "score": <0-10, where 10 is highly specific and 0 is completely vague>,
  "concrete_claims": ["<specific, verifiable claims found in content>"],
  "vague_claims": ["<vague, generic claims that could apply to anything>"],
  "assessment": "<1-2 sentence summary>"
}}"""


async def analyze_specificity(
    content: str,
    grounding_context: list[str] | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> SpecificityAnalysis:
    settings = get_settings()
    grounding = ""
    if grounding_context:
        joined = "\n".join(grounding_context)[:2000]
        grounding = f"\nPRODUCT CONTEXT (for verifying claims):\n{joined}"

    response = await generate(
        SPECIFICITY_PROMPT.format(content=content[:2500], grounding=grounding),
        model=settings.SCORING_MODEL,
        temperature=0.2,
        max_tokens=800,
        workflow="scoring",
        chain="specificity",
        job_id=job_id,
        session_id=session_id,
    )
    parsed = parse_llm_json_dict(response.text)
    return SpecificityAnalysis(
        score=clamp_score(parsed.get("score")),
        concrete_claims=[str(c) for c in parsed.get("concrete_claims") or []],
        vague_claims=[str(c) for c in parsed.get("vague_claims") or []],
        assessment=str(parsed.get("assessment") or ""),
    )

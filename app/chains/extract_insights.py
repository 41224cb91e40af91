"""Extract structured product insights from raw product documentation.

One LLM call per job/session. The result feeds every pipeline through the
tiered formatters in app.core.insight_formatters.
"""

from uuid import UUID

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.llm import parse_llm_json_dict
from app.core.logging import get_logger
from app.core.schemas_insights import ExtractedInsights
from app.services.llm_gateway import generate

logger = get_logger(__name__)

INSIGHTS_PROMPT = """Analyze the following product documentation and extract structured insights.

## Documentation
{docs}

Return a JSON object with these fields:
- "product_capabilities": array of specific product capabilities/features (max 12)
- "key_differentiators": array of what makes this product different from alternatives (max 8)
- "target_personas": array of who this product is for, with their roles and concerns (max 6)
- "pain_points_addressed": array of specific practitioner pain points this product solves (max 10)
- "claims_and_metrics": array of concrete claims, numbers, benchmarks, or performance metrics (max 10)
- "technical_details": array of important technical details, integrations, or architecture notes (max 8)
- "summary": a 2-3 sentence summary of what this product does and why it matters
- "domain": the broad industry domain (e.g. "observability", "security", "databases", "CI/CD")
- "category": the product category within that domain (e.g. "log management", "SIEM", "APM")
- "product_type": the type of product (e.g. "SaaS platform", "open-source tool", "managed service")

Be specific. Extract actual details, not generic descriptions. If the docs mention specific
numbers, include them.

Return ONLY valid JSON, no markdown code fences or explanation."""

_LIST_CAPS = {
    "product_capabilities": 12,
    "key_differentiators": 8,
    "target_personas": 6,
    "pain_points_addressed": 10,
    "claims_and_metrics": 10,
    "technical_details": 8,
}


async def extract_insights(
    raw_docs: str,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> ExtractedInsights | None:
    """
    Extract insights from product docs.

    Returns:
        ExtractedInsights, or None on any failure. Callers fall back to
        build_fallback_insights().
    """
    settings = get_settings()
    truncated = (raw_docs or "")[: settings.MAX_INSIGHT_DOC_CHARS]

    try:
        response = await generate(
            INSIGHTS_PROMPT.format(docs=truncated),
            model=settings.INSIGHTS_MODEL,
            temperature=0.2,
            max_tokens=4000,
            workflow="insights",
            chain="extract_insights",
            job_id=job_id,
            session_id=session_id,
        )
        parsed = parse_llm_json_dict(response.text)

        # Models sometimes return null for fields they could not fill
        cleaned = {k: v for k, v in parsed.items() if v is not None}
        for key, cap in _LIST_CAPS.items():
            if isinstance(cleaned.get(key), list):
                cleaned[key] = [str(item) for item in cleaned[key][:cap]]

        insights = ExtractedInsights.model_validate(cleaned)
        logger.info(
            f"Extracted insights: {len(insights.product_capabilities)} capabilities, "
            f"domain={insights.domain}",
            extra={"job_id": str(job_id) if job_id else None},
        )
        return insights

    except (ValueError, ValidationError) as e:
        logger.error(f"Insight extraction returned unusable JSON: {e}")
        return None
    except Exception as e:
        logger.error(f"Document insight extraction failed: {e}")
        return None

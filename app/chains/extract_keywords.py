"""Practitioner search phrases for community research, inferred from session context."""

from uuid import UUID

from app.core.config import get_settings
from app.core.errors import KeywordExtractionError
from app.core.llm import parse_llm_json_dict
from app.core.logging import get_logger
from app.services.llm_gateway import generate

logger = get_logger(__name__)

MAX_KEYWORDS = 8

KEYWORDS_PROMPT = """Analyze this product/pain context and extract the search phrases practitioners use
when they complain about the problems it addresses.

## Context
{context}

Return a JSON object with:
- "keywords": 5-8 multi-word phrases a practitioner would use when complaining (pain terms, tool
  categories, community jargon). Never the product's own name.
- "communities": 3-6 communities where these discussions happen (subreddits, forums, trackers)

Return ONLY valid JSON."""


async def extract_search_keywords(
    context_parts: list[str],
    session_id: UUID | str | None = None,
) -> tuple[list[str], list[str]]:
    """
    Infer search phrases and communities from pain/product context.

    Returns:
        (keywords, communities)

    Raises:
        KeywordExtractionError: If there is no context or the model returns no keywords
    """
    context = "\n\n".join(p for p in context_parts if p and p.strip())
    if not context:
        raise KeywordExtractionError("No product context provided; cannot extract keywords")

    try:
        response = await generate(
            KEYWORDS_PROMPT.format(context=context[:6000]),
            model=get_settings().FAST_MODEL,
            temperature=0.3,
            max_tokens=1000,
            workflow="workspace",
            chain="extract_keywords",
            session_id=session_id,
        )
        parsed = parse_llm_json_dict(response.text)
    except Exception as e:
        raise KeywordExtractionError(f"AI keyword extraction failed: {e}") from e

    keywords = [str(k) for k in parsed.get("keywords") or [] if str(k).strip()][:MAX_KEYWORDS]
    communities = [str(c) for c in parsed.get("communities") or []][:6]
    if not keywords:
        raise KeywordExtractionError("AI keyword extraction returned no keywords from the provided context")

    logger.info(f"Extracted {len(keywords)} search keywords", extra={"session_id": str(session_id)})
    return keywords, communities

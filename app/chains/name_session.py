"""Upgrade a session's placeholder name to a short LLM-written title once insights exist."""

from uuid import UUID

from app.core.config import get_settings
from app.core.insight_formatters import UNKNOWN
from app.core.logging import get_logger
from app.core.prompt_builder import asset_label
from app.core.schemas_insights import ExtractedInsights
from app.db.sessions import get_session_by_job, update_session
from app.services.llm_gateway import generate

logger = get_logger(__name__)

MAX_NAME_CHARS = 80

NAME_PROMPT = """Write a 3-6 word title for a messaging workspace session.

Topic: {topic}
Domain: {domain}
Deliverables: {deliverables}

Return ONLY the title. No quotes, no punctuation at the end."""


def _clean_name(raw: str | None) -> str:
    text = (raw or "").strip()
    if not text:
        return ""
    return text.splitlines()[0].strip("\"'` ").rstrip(".")[:MAX_NAME_CHARS]


async def name_session_from_insights(
    job_id: UUID | str,
    insights: ExtractedInsights,
    asset_types: list[str],
) -> str | None:
    """
    Rename the session linked to a job. Non-fatal: every failure is logged and skipped.

    Returns:
        The new name, or None when the session was left untouched
    """
    try:
        session = get_session_by_job(job_id)
        if not session:
            return None

        topic = insights.summary.strip()
        domain = insights.domain if insights.domain != UNKNOWN else ""
        category = insights.category if insights.category != UNKNOWN else ""
        if not topic and not domain and not category:
            logger.debug(f"No usable topic to name session {session['id']}")
            return None

        response = await generate(
            NAME_PROMPT.format(
                topic=topic[:300] or category,
                domain=" / ".join(p for p in (domain, category) if p) or UNKNOWN,
                deliverables=", ".join(asset_label(t) for t in asset_types),
            ),
            model=get_settings().FAST_MODEL,
            temperature=0.3,
            max_tokens=50,
            workflow="workspace",
            chain="name_session",
            job_id=job_id,
            session_id=session["id"],
        )
        name = _clean_name(response.text)
        if not name:
            return None

        update_session(session["id"], {"name": name})
        logger.info(f"Named session {session['id']}: {name}", extra={"session_id": session["id"]})
        return name

    except Exception as e:
        logger.warning(f"Session naming failed: {e}", extra={"job_id": str(job_id)})
        return None

"""Five-axis content scoring.

Four branches run concurrently: slop, vendor-speak (+ authenticity), specificity
and the persona panel. A branch that raises scores a neutral 5 and is listed in
scorer_health.failed; score_content itself never raises.
"""

import asyncio
from uuid import UUID

from app.chains.critique_personas import persona_average, run_persona_critics
from app.chains.detect_slop import analyze_slop
from app.chains.detect_vendor_speak import analyze_vendor_speak
from app.chains.score_authenticity import analyze_authenticity
from app.chains.score_specificity import analyze_specificity
from app.core.logging import get_logger
from app.core.schemas_scoring import ScorerHealth, ScoreResults, SlopAnalysis

logger = get_logger(__name__)

NEUTRAL_SCORE = 5.0


async def score_content(
    content: str,
    grounding_context: list[str] | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> ScoreResults:
    """
    Score content on all five axes.

    Args:
        content: Text to score
        grounding_context: Product facts the specificity scorer checks claims against
        job_id: Job to attribute LLM usage to
        session_id: Session to attribute LLM usage to

    Returns:
        Complete ScoreResults, with neutral defaults for any failed branch
    """
    ids = {"job_id": job_id, "session_id": session_id}
    failed: list[str] = []

    async def slop_branch() -> tuple[float, SlopAnalysis | None]:
        try:
            analysis = await analyze_slop(content, **ids)
            return analysis.score, analysis
        except Exception as e:
            logger.warning(f"Slop scorer failed: {e}")
            failed.append("slop")
            return NEUTRAL_SCORE, None

    async def vendor_branch() -> tuple[float, float]:
        vendor = None
        try:
            vendor = await analyze_vendor_speak(content, **ids)
            vendor_score = vendor.score
        except Exception as e:
            logger.warning(f"Vendor-speak scorer failed: {e}")
            failed.append("vendor_speak")
            vendor_score = NEUTRAL_SCORE
        authenticity = await analyze_authenticity(content, vendor, **ids)
        return vendor_score, authenticity.score

    async def specificity_branch() -> float:
        try:
            return (await analyze_specificity(content, grounding_context, **ids)).score
        except Exception as e:
            logger.warning(f"Specificity scorer failed: {e}")
            failed.append("specificity")
            return NEUTRAL_SCORE

    async def persona_branch() -> float:
        try:
            return persona_average(await run_persona_critics(content, **ids))
        except Exception as e:
            logger.warning(f"Persona panel failed: {e}")
            failed.append("persona")
            return NEUTRAL_SCORE

    (slop_score, slop_analysis), (vendor_score, authenticity_score), specificity, persona = (
        await asyncio.gather(slop_branch(), vendor_branch(), specificity_branch(), persona_branch())
    )

    health = ScorerHealth(succeeded=4 - len(failed), failed=sorted(failed), total=4)
    if failed:
        logger.warning(
            f"Scoring degraded: {len(failed)}/4 scorers failed ({', '.join(health.failed)})",
            extra={"job_id": str(job_id) if job_id else None},
        )

    return ScoreResults(
        slop_score=slop_score,
        vendor_speak_score=vendor_score,
        authenticity_score=authenticity_score,
        specificity_score=specificity,
        persona_avg_score=persona,
        slop_analysis=slop_analysis,
        scorer_health=health,
    )

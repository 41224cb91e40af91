"""Shared building blocks for the generation pipelines and the workspace actions.

Every pipeline composes the same steps: load job inputs, extract insights, fetch
banned words, generate + score each (asset_type, voice) pair, refine when the
quality gates fail, store, report progress, finalize.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from app.chains.detect_slop import deslop
from app.chains.extract_insights import extract_insights
from app.chains.generate_banned_words import get_banned_words_for_voice
from app.chains.name_session import name_session_from_insights
from app.chains.run_research import EvidenceBundle, ResearchOutcome
from app.chains.score_content import score_content
from app.chains.validate_grounding import validate_grounding
from app.core.config import get_settings
from app.core.insight_formatters import build_fallback_insights, format_insights_for_scoring
from app.core.logging import get_logger
from app.core.prompt_builder import (
    REFINEMENT_TEMPERATURE,
    asset_label,
    asset_temperature,
    build_refinement_prompt,
)
from app.core.quality_gates import check_quality_gates, total_quality_score
from app.core.schemas_generation import EvidenceLevel, JobInputs, VoiceProfile
from app.core.schemas_insights import ExtractedInsights
from app.core.schemas_scoring import ScoredContent, ScoreResults, ScoringThresholds
from app.db.jobs import complete_job, emit_pipeline_step, get_job, update_job_progress
from app.db.messaging_assets import store_variant
from app.db.voice_profiles import get_voice_profiles
from app.services.llm_gateway import generate

logger = get_logger(__name__)

# Two or more failed scorers make the scores too unreliable to refine against
MANUAL_REVIEW_FAILED_SCORERS = 2

STORED_RESEARCH_CHARS = 8000


@dataclass
class PipelineRun:
    """Everything a pipeline strategy needs for one job."""

    job_id: str
    inputs: JobInputs
    voices: list[VoiceProfile]
    insights: ExtractedInsights | None = None
    banned_words: dict[str, list[str]] = field(default_factory=dict)
    # Set by strategies that ran community research; drives grounding checks and traceability
    evidence: EvidenceBundle | None = None

    @property
    def total_items(self) -> int:
        return len(self.inputs.asset_types) * len(self.voices)

    @property
    def grounding(self) -> list[str]:
        return [format_insights_for_scoring(self.insights)] if self.insights else []

    @property
    def pairs(self) -> list[tuple[str, VoiceProfile]]:
        return [(a, v) for a in self.inputs.asset_types for v in self.voices]


@dataclass
class RefinementOutcome:
    content: str
    scores: ScoreResults
    passes_gates: bool
    refined: bool = False
    needs_manual_review: bool = False

    @property
    def metadata(self) -> dict:
        return {"refined": self.refined, "needsManualReview": self.needs_manual_review}


def load_pipeline_run(job_id: UUID | str) -> PipelineRun:
    """
    Rebuild pipeline inputs from the job row.

    Raises:
        ValueError: If the job is missing or none of its voices exist
    """
    job = get_job(job_id)
    if not job:
        raise ValueError(f"Job {job_id} not found")

    inputs = JobInputs.model_validate(job.get("product_context") or {})
    voices = get_voice_profiles(inputs.voice_profile_ids)
    if not voices:
        raise ValueError("No valid voice profiles selected")
    return PipelineRun(job_id=str(job_id), inputs=inputs, voices=voices)


async def prepare_insights(run: PipelineRun, progress: int = 2) -> ExtractedInsights:
    """Extract insights (fallback on failure), rename the session and fetch banned words."""
    emit_pipeline_step(run.job_id, "extract-insights", "running")
    update_job_progress(run.job_id, progress, "Extracting product insights...")

    insights = await extract_insights(run.inputs.product_docs, job_id=run.job_id)
    if insights is None:
        logger.warning("Insight extraction failed, using fallback", extra={"job_id": run.job_id})
        insights = build_fallback_insights(run.inputs.product_docs)
    run.insights = insights

    await name_session_from_insights(run.job_id, insights, run.inputs.asset_types)
    emit_pipeline_step(run.job_id, "extract-insights", "completed")

    words = await asyncio.gather(*(get_banned_words_for_voice(v, insights) for v in run.voices))
    run.banned_words = {v.id: w for v, w in zip(run.voices, words)}
    return insights


async def generate_and_score(
    prompt: str,
    system: str,
    asset_type: str,
    grounding: list[str],
    model: str | None = None,
    temperature: float | None = None,
    chain: str = "generate",
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
) -> ScoredContent:
    response = await generate(
        prompt,
        system=system,
        model=model,
        temperature=asset_temperature(asset_type) if temperature is None else temperature,
        workflow="generation",
        chain=chain,
        job_id=job_id,
        session_id=session_id,
    )
    scores = await score_content(response.text, grounding, job_id=job_id, session_id=session_id)
    return ScoredContent(content=response.text, scores=scores)


async def refine_if_needed(
    scored: ScoredContent,
    thresholds: ScoringThresholds,
    voice: VoiceProfile,
    asset_type: str,
    system: str,
    grounding: list[str],
    model: str | None = None,
    job_id: UUID | str | None = None,
    session_id: UUID | str | None = None,
    max_iterations: int | None = None,
) -> RefinementOutcome:
    """
    Refine until the gates pass, the score plateaus or the iteration cap is hit.

    Each iteration deslops when slop is over its limit, then asks for a
    consolidated rewrite naming every failing axis at a lower temperature and
    re-scores it. A candidate is only adopted when its total strictly beats the
    current one. A failed rewrite keeps the current candidate rather than
    losing the pair.
    """
    ids = {"job_id": job_id, "session_id": session_id}
    log_extra = {"job_id": str(job_id) if job_id else None, "asset_type": asset_type}
    if check_quality_gates(scored.scores, thresholds):
        return RefinementOutcome(scored.content, scored.scores, passes_gates=True)

    failed = scored.scores.scorer_health.failed
    if len(failed) >= MANUAL_REVIEW_FAILED_SCORERS:
        logger.warning(
            f"Skipping refinement: {len(failed)} scorers failed ({', '.join(failed)})",
            extra=log_extra,
        )
        return RefinementOutcome(
            scored.content, scored.scores, passes_gates=False, needs_manual_review=True
        )

    current = scored
    iterations = max_iterations or get_settings().REFINEMENT_MAX_ITERATIONS
    for iteration in range(1, iterations + 1):
        if check_quality_gates(current.scores, thresholds):
            break

        content = current.content
        if current.scores.slop_score > thresholds.slop_max:
            try:
                content = await deslop(content, current.scores.slop_analysis, **ids)
            except Exception as e:
                logger.warning(f"Deslop failed on iteration {iteration}, refining as-is: {e}", extra=log_extra)

        try:
            response = await generate(
                build_refinement_prompt(content, current.scores, thresholds, voice, asset_type),
                system=system,
                model=model,
                temperature=REFINEMENT_TEMPERATURE,
                workflow="generation",
                chain="refine",
                **ids,
            )
            candidate = ScoredContent(
                content=response.text,
                scores=await score_content(response.text, grounding, **ids),
                label="refined",
            )
        except Exception as e:
            logger.warning(
                f"Refinement iteration {iteration} failed, keeping current version: {e}",
                extra=log_extra,
            )
            break

        if total_quality_score(candidate.scores) <= total_quality_score(current.scores):
            logger.info(f"Refinement plateaued on iteration {iteration}", extra=log_extra)
            break
        current = candidate

    logger.info(
        f"Refinement kept the {'refined' if current is not scored else 'original'} candidate",
        extra=log_extra,
    )
    return RefinementOutcome(
        current.content,
        current.scores,
        passes_gates=check_quality_gates(current.scores, thresholds),
        refined=current is not scored,
    )


def report_item_progress(run: PipelineRun, completed: int, baseline: int, span: int) -> None:
    progress = min(round(baseline + (completed / max(run.total_items, 1)) * span), 95)
    update_job_progress(run.job_id, progress, f"Generated {completed}/{run.total_items}")


def finalize_job(
    run: PipelineRun,
    research: ResearchOutcome | None,
    evidence_level: EvidenceLevel | None = None,
) -> None:
    """Record research metadata on the job and complete it.

    The research text is kept (truncated) so workspace regeneration can reuse it.
    """
    available = bool(research and research.ok)
    context: dict[str, Any] = {
        "_researchAvailable": available,
        "_researchLength": len(research.text) if available else 0,
    }
    if available:
        context["_researchContext"] = research.text[:STORED_RESEARCH_CHARS]
    if evidence_level:
        context["_evidenceLevel"] = evidence_level.value
    complete_job(run.job_id, context)


PairProducer = Callable[[str, VoiceProfile], Awaitable[tuple[RefinementOutcome, dict[str, Any]]]]


async def run_pair_loop(run: PipelineRun, produce: PairProducer, baseline: int = 18, span: int = 77) -> int:
    """
    Produce and store one variant per (asset_type, voice), sequentially.

    A failing pair is logged and skipped; it never aborts the job.

    Returns:
        Number of variants stored
    """
    stored = 0
    for completed, (asset_type, voice) in enumerate(run.pairs, start=1):
        update_job_progress(
            run.job_id,
            min(round(baseline + ((completed - 1) / max(run.total_items, 1)) * span), 95),
            f"Generating {asset_label(asset_type)} ({voice.name})",
        )
        step = f"{asset_type}-{voice.slug or voice.id}"
        try:
            emit_pipeline_step(run.job_id, step, "running")
            outcome, metadata = await produce(asset_type, voice)
            content = outcome.content
            metadata = {**metadata, **outcome.metadata}
            if run.evidence:
                validation = await validate_grounding(content, run.evidence.evidence_level, job_id=run.job_id)
                if validation.fabrication_stripped:
                    content = validation.content
                    metadata["fabricationStripped"] = True
                metadata["sourceCounts"] = run.evidence.source_counts
            store_variant(
                run.job_id,
                asset_type,
                content,
                voice,
                outcome.scores,
                outcome.passes_gates,
                metadata,
                practitioner_quotes=run.evidence.practitioner_quotes if run.evidence else None,
            )
            emit_pipeline_step(
                run.job_id,
                step,
                "completed",
                {"scores": outcome.scores.as_columns(), "passesGates": outcome.passes_gates},
            )
            stored += 1
        except Exception as e:
            logger.error(
                f"Failed to generate variant: {e}",
                extra={"job_id": run.job_id, "asset_type": asset_type, "voice": voice.name},
            )
            emit_pipeline_step(run.job_id, step, "failed", {"error": str(e)})

        report_item_progress(run, completed, baseline, span)
    return stored

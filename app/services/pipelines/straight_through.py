"""Straight-through pipeline: score supplied messaging as-is, no generation."""

from app.chains.score_content import score_content
from app.core.quality_gates import check_quality_gates
from app.core.schemas_generation import VoiceProfile
from app.services.pipeline_steps import (
    PipelineRun,
    RefinementOutcome,
    finalize_job,
    prepare_insights,
    run_pair_loop,
)


async def run_straight_through_pipeline(run: PipelineRun) -> None:
    existing = (run.inputs.existing_messaging or "").strip()
    if not existing:
        raise ValueError(
            "No existing messaging provided. Straight-through mode scores existing content; "
            "paste your messaging to evaluate it."
        )

    await prepare_insights(run, progress=5)

    async def produce(asset_type: str, voice: VoiceProfile):
        scores = await score_content(existing, run.grounding, job_id=run.job_id)
        outcome = RefinementOutcome(
            existing, scores, passes_gates=check_quality_gates(scores, voice.scoring_thresholds)
        )
        return outcome, {}

    await run_pair_loop(run, produce, baseline=15, span=80)
    finalize_job(run, None)

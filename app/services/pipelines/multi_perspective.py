"""Multi-perspective pipeline: three angle drafts, a synthesis, keep the best of four."""

import asyncio

from app.chains.multi_perspective import generate_perspectives
from app.chains.run_research import combine_research, run_community_research, run_competitive_research
from app.core.prompt_builder import build_system_prompt, build_user_prompt, load_template
from app.core.quality_gates import pick_best_result
from app.core.schemas_generation import PipelineName, VoiceProfile
from app.db.jobs import emit_pipeline_step, update_job_progress
from app.services.pipeline_steps import (
    PipelineRun,
    finalize_job,
    prepare_insights,
    refine_if_needed,
    run_pair_loop,
)


async def run_multi_perspective_pipeline(run: PipelineRun) -> None:
    inputs = run.inputs
    insights = await prepare_insights(run)

    update_job_progress(run.job_id, 5, "Running community and competitive research...")
    evidence, competitive = await asyncio.gather(
        run_community_research(insights, inputs.prompt, job_id=run.job_id),
        run_competitive_research(insights, inputs.prompt, job_id=run.job_id),
    )
    run.evidence = evidence
    research = combine_research(("", competitive), ("", evidence.as_outcome()))
    emit_pipeline_step(run.job_id, "research", "completed", {"ok": research.ok})

    async def produce(asset_type: str, voice: VoiceProfile):
        system = build_system_prompt(
            voice,
            asset_type,
            evidence.evidence_level,
            PipelineName.MULTI_PERSPECTIVE.value,
            run.banned_words.get(voice.id),
        )
        template = load_template(asset_type)
        base_prompt = build_user_prompt(
            insights, template, research.text if research.ok else "", inputs.existing_messaging, inputs.prompt
        )
        candidates = await generate_perspectives(
            base_prompt, system, asset_type, template, run.grounding, model=inputs.model, job_id=run.job_id
        )
        best = pick_best_result(candidates)

        outcome = await refine_if_needed(
            best,
            voice.scoring_thresholds,
            voice,
            asset_type,
            system,
            run.grounding,
            model=inputs.model,
            job_id=run.job_id,
        )
        return outcome, {"evidenceLevel": evidence.evidence_level.value, "winner": best.label}

    update_job_progress(run.job_id, 18, "Generating from multiple perspectives...")
    await run_pair_loop(run, produce, baseline=18, span=77)
    finalize_job(run, research, evidence.evidence_level)

"""Standard pipeline: research, then generate -> score -> refine for every pair."""

from app.chains.run_research import combine_research, run_community_research, run_competitive_research
from app.core.logging import get_logger
from app.core.prompt_builder import build_system_prompt, build_user_prompt, load_template
from app.core.schemas_generation import PipelineName, VoiceProfile
from app.db.jobs import emit_pipeline_step, update_job_progress
from app.services.pipeline_steps import (
    PipelineRun,
    finalize_job,
    generate_and_score,
    prepare_insights,
    refine_if_needed,
    run_pair_loop,
)

logger = get_logger(__name__)

# Community findings appended to the competitive research focus
COMMUNITY_FOCUS_CHARS = 2000


async def run_standard_pipeline(run: PipelineRun) -> None:
    inputs = run.inputs
    insights = await prepare_insights(run)

    emit_pipeline_step(run.job_id, "community-research", "running")
    update_job_progress(run.job_id, 5, "Running community research...")
    evidence = await run_community_research(insights, inputs.prompt, job_id=run.job_id)
    run.evidence = evidence
    emit_pipeline_step(
        run.job_id,
        "community-research",
        "completed",
        {"evidenceLevel": evidence.evidence_level.value},
    )

    emit_pipeline_step(run.job_id, "competitive-research", "running")
    update_job_progress(run.job_id, 10, "Running competitive research...")
    focus = inputs.prompt or ""
    if evidence.outcome.ok:
        focus += (
            "\n\nCommunity findings to inform competitive analysis:\n"
            + evidence.context_text[:COMMUNITY_FOCUS_CHARS]
        )
    competitive = await run_competitive_research(insights, focus.strip() or None, job_id=run.job_id)
    emit_pipeline_step(run.job_id, "competitive-research", "completed", {"ok": competitive.ok})

    research = combine_research(("", competitive), ("", evidence.as_outcome()))

    async def produce(asset_type: str, voice: VoiceProfile):
        system = build_system_prompt(
            voice,
            asset_type,
            evidence.evidence_level,
            PipelineName.STANDARD.value,
            run.banned_words.get(voice.id),
        )
        user = build_user_prompt(
            insights,
            load_template(asset_type),
            research.text if research.ok else "",
            inputs.existing_messaging,
            inputs.prompt,
        )
        scored = await generate_and_score(
            user, system, asset_type, run.grounding, model=inputs.model, job_id=run.job_id
        )
        outcome = await refine_if_needed(
            scored,
            voice.scoring_thresholds,
            voice,
            asset_type,
            system,
            run.grounding,
            model=inputs.model,
            job_id=run.job_id,
        )
        return outcome, {"evidenceLevel": evidence.evidence_level.value}

    update_job_progress(run.job_id, 18, "Generating drafts...")
    await run_pair_loop(run, produce, baseline=18, span=77)
    finalize_job(run, research, evidence.evidence_level)

"""Split-research pipeline: competitive and practitioner research run concurrently."""

import asyncio

from app.chains.run_research import combine_research, run_community_research, run_competitive_research
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


async def run_split_research_pipeline(run: PipelineRun) -> None:
    inputs = run.inputs
    insights = await prepare_insights(run)

    emit_pipeline_step(run.job_id, "research", "running")
    update_job_progress(run.job_id, 5, "Running competitive and practitioner research...")
    competitive, evidence = await asyncio.gather(
        run_competitive_research(insights, inputs.prompt, job_id=run.job_id),
        run_community_research(insights, inputs.prompt, job_id=run.job_id),
    )
    run.evidence = evidence
    research = combine_research(
        ("Competitive Research", competitive),
        ("Practitioner Pain Research", evidence.as_outcome()),
    )
    emit_pipeline_step(
        run.job_id,
        "research",
        "completed",
        {
            "competitiveOk": competitive.ok,
            "practitionerOk": evidence.outcome.ok,
            "evidenceLevel": evidence.evidence_level.value,
        },
    )

    async def produce(asset_type: str, voice: VoiceProfile):
        system = build_system_prompt(
            voice,
            asset_type,
            evidence.evidence_level,
            PipelineName.SPLIT_RESEARCH.value,
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

    await run_pair_loop(run, produce, baseline=18, span=77)
    finalize_job(run, research, evidence.evidence_level)

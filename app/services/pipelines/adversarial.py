"""Adversarial pipeline: draft, let a hostile practitioner attack it, rewrite to survive."""

from app.chains.adversarial_critique import attack_content, defend_content
from app.chains.run_research import combine_research, run_community_research, run_competitive_research
from app.chains.score_content import score_content
from app.core.insight_formatters import format_insights_for_prompt
from app.core.prompt_builder import build_system_prompt, build_user_prompt, load_template
from app.core.quality_gates import pick_best_result
from app.core.schemas_generation import PipelineName, VoiceProfile
from app.core.schemas_scoring import ScoredContent
from app.db.jobs import emit_pipeline_step, update_job_progress
from app.services.pipeline_steps import (
    PipelineRun,
    finalize_job,
    generate_and_score,
    prepare_insights,
    refine_if_needed,
    run_pair_loop,
)

ATTACK_ROUNDS = 2


async def run_adversarial_pipeline(run: PipelineRun) -> None:
    inputs = run.inputs
    insights = await prepare_insights(run)

    update_job_progress(run.job_id, 5, "Running community research...")
    evidence = await run_community_research(insights, inputs.prompt, job_id=run.job_id)
    run.evidence = evidence
    update_job_progress(run.job_id, 10, "Running competitive research...")
    competitive = await run_competitive_research(insights, inputs.prompt, job_id=run.job_id)
    research = combine_research(("", competitive), ("", evidence.as_outcome()))
    emit_pipeline_step(run.job_id, "research", "completed", {"ok": research.ok})

    product_context = format_insights_for_prompt(insights)

    async def produce(asset_type: str, voice: VoiceProfile):
        system = build_system_prompt(
            voice,
            asset_type,
            evidence.evidence_level,
            PipelineName.ADVERSARIAL.value,
            run.banned_words.get(voice.id),
        )
        template = load_template(asset_type)
        user = build_user_prompt(
            insights, template, research.text if research.ok else "", inputs.existing_messaging, inputs.prompt
        )
        initial = await generate_and_score(
            user, system, asset_type, run.grounding, model=inputs.model, job_id=run.job_id
        )
        initial.label = "initial"

        current = initial.content
        for round_number in range(1, ATTACK_ROUNDS + 1):
            attacks = await attack_content(current, asset_type, job_id=run.job_id)
            current = await defend_content(
                current, attacks, product_context, template, system, asset_type,
                model=inputs.model, job_id=run.job_id,
            )
            emit_pipeline_step(run.job_id, f"defend-r{round_number}-{asset_type}-{voice.slug}", "completed")

        defended = ScoredContent(
            content=current,
            scores=await score_content(current, run.grounding, job_id=run.job_id),
            label="defended",
        )
        best = pick_best_result([initial, defended])

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

    await run_pair_loop(run, produce, baseline=18, span=77)
    finalize_job(run, research, evidence.evidence_level)

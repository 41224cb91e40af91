"""Outside-in pipeline: practitioner pain first, product specifics layered in last.

The first draft is deliberately starved of product detail so vendor framing
cannot set the tone. Competitive research and draft scoring then run
concurrently, and a layering pass adds product specifics back without losing
the practitioner voice.
"""

import asyncio

from app.chains.run_research import (
    EvidenceBundle,
    ResearchOutcome,
    combine_research,
    run_community_research,
    run_competitive_research,
)
from app.chains.score_content import score_content
from app.core.insight_formatters import format_insights_for_discovery, format_insights_for_prompt
from app.core.logging import get_logger
from app.core.prompt_builder import (
    REFINEMENT_TEMPERATURE,
    build_pain_first_prompt,
    build_system_prompt,
    load_template,
)
from app.core.quality_gates import pick_best_result
from app.core.schemas_generation import EvidenceLevel, PipelineName, VoiceProfile
from app.core.schemas_insights import ExtractedInsights
from app.core.schemas_scoring import ScoredContent
from app.db.jobs import emit_pipeline_step, update_job_progress
from app.services.llm_gateway import generate
from app.services.pipeline_steps import (
    PipelineRun,
    finalize_job,
    generate_and_score,
    prepare_insights,
    refine_if_needed,
    run_pair_loop,
)

logger = get_logger(__name__)

PRODUCT_EXCERPT_CHARS = 1500
COMPETITIVE_CONTEXT_CHARS = 5000

SYNTHESIZE_PAIN_PROMPT = """You are a practitioner who works with tools in this space daily. Based on your
knowledge of the community (Reddit, Hacker News, Stack Overflow, GitHub Issues), describe the REAL pain
points practitioners face.

## Product Area
{product_area}

{focus}## Instructions
Write as if you're summarizing dozens of real community threads. Include:
1. **Common Frustrations**: What practitioners actually complain about, in their language
2. **Failed Workarounds**: What people try that doesn't work
3. **Wished-For Solutions**: What the community says it wants
4. **Real Scenarios**: Specific situations where current tools fail

Be raw, honest and specific. No marketing polish."""

LAYER_PROMPT = """Here's a practitioner-grounded draft. Layer in the product specifics and competitive
positioning below WITHOUT losing the practitioner voice.

## Practitioner-Grounded Draft
{draft}

## Product Specifics
{product_context}

## Competitive Research
{competitive}

## Rules
1. Keep the practitioner voice and pain-first structure
2. Replace vague claims with the concrete product specifics above
3. Add competitive differentiation only where it strengthens the narrative
4. Don't add vendor-speak or marketing jargon
5. Output ONLY the updated content"""


async def _practitioner_context(run: PipelineRun, insights: ExtractedInsights) -> EvidenceBundle:
    """Community evidence, or model-synthesized pain when no community evidence exists."""
    evidence = await run_community_research(insights, run.inputs.prompt, job_id=run.job_id)
    if evidence.evidence_level != EvidenceLevel.PRODUCT_ONLY:
        return evidence

    logger.warning(
        "No community evidence, synthesizing practitioner pain from model knowledge",
        extra={"job_id": run.job_id},
    )
    update_job_progress(run.job_id, 10, "Synthesizing practitioner pain from model knowledge...")
    focus = f"## Focus Area\n{run.inputs.prompt}\n\n" if run.inputs.prompt else ""
    try:
        response = await generate(
            SYNTHESIZE_PAIN_PROMPT.format(
                product_area=format_insights_for_discovery(insights) or insights.summary,
                focus=focus,
            ),
            model=run.inputs.model,
            temperature=0.8,
            chain="synthesize_pain",
            job_id=run.job_id,
        )
    except Exception as e:
        logger.warning(f"Pain synthesis failed, continuing product-only: {e}")
        return evidence

    emit_pipeline_step(run.job_id, "synthesize-pain", "completed")
    return EvidenceBundle(
        outcome=ResearchOutcome.success(
            f"## Synthesized Practitioner Pain (from model knowledge)\n\n{response.text}"
        ),
        evidence_level=EvidenceLevel.PARTIAL,
    )


async def run_outside_in_pipeline(run: PipelineRun) -> None:
    inputs = run.inputs
    insights = await prepare_insights(run)

    emit_pipeline_step(run.job_id, "practitioner-research", "running")
    update_job_progress(run.job_id, 5, "Researching practitioner pain...")
    evidence = await _practitioner_context(run, insights)
    run.evidence = evidence
    practitioner = evidence.outcome.text if evidence.outcome.ok else ""
    emit_pipeline_step(
        run.job_id,
        "practitioner-research",
        "completed",
        {"evidenceLevel": evidence.evidence_level.value},
    )

    product_excerpt = inputs.product_docs[:PRODUCT_EXCERPT_CHARS]
    competitive_task: asyncio.Task | None = None

    async def produce(asset_type: str, voice: VoiceProfile):
        nonlocal competitive_task
        system = build_system_prompt(
            voice,
            asset_type,
            evidence.evidence_level,
            PipelineName.OUTSIDE_IN.value,
            run.banned_words.get(voice.id),
        )
        template = load_template(asset_type)
        draft_text = (
            await generate(
                build_pain_first_prompt(practitioner, template, asset_type, insights, product_excerpt),
                system=system,
                model=inputs.model,
                chain="pain_first_draft",
                job_id=run.job_id,
            )
        ).text

        # One research run shared by every pair; awaiting a finished task returns its result
        if competitive_task is None:
            competitive_task = asyncio.create_task(
                run_competitive_research(insights, inputs.prompt, job_id=run.job_id)
            )
        draft_scores, competitive = await asyncio.gather(
            score_content(draft_text, run.grounding, job_id=run.job_id),
            competitive_task,
        )
        draft = ScoredContent(content=draft_text, scores=draft_scores, label="pain-first")

        layered = await generate_and_score(
            LAYER_PROMPT.format(
                draft=draft_text,
                product_context=format_insights_for_prompt(insights),
                competitive=(
                    competitive.text[:COMPETITIVE_CONTEXT_CHARS] if competitive.ok else "(none available)"
                ),
            ),
            system,
            asset_type,
            run.grounding,
            model=inputs.model,
            temperature=REFINEMENT_TEMPERATURE,
            chain="layer_product",
            job_id=run.job_id,
        )
        layered.label = "layered"
        best = pick_best_result([draft, layered])

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

    await run_pair_loop(run, produce, baseline=15, span=80)

    competitive = await competitive_task if competitive_task else ResearchOutcome.failure("not run")
    research = combine_research(("", evidence.outcome), ("", competitive))
    finalize_job(run, research, evidence.evidence_level)

"""End-to-end tests for the split-research, outside-in, adversarial and multi-perspective pipelines.

Each strategy runs through run_generation_job with its LLM and research calls
mocked, so the assertions cover what reaches the prompts and what gets stored.
"""

from contextlib import ExitStack
from unittest.mock import AsyncMock, patch

import pytest

from app.chains.run_research import EvidenceBundle, ResearchOutcome
from app.chains.validate_grounding import GroundingValidation
from app.core.schemas_generation import EvidenceLevel, JobInputs
from app.core.schemas_insights import ExtractedInsights
from app.core.schemas_scoring import ScoreResults
from app.db.jobs import create_job, get_job
from app.services.generation_orchestrator import run_generation_job
from app.services.llm_gateway import GenerationResult
from app.services.pipelines.adversarial import ATTACK_ROUNDS
from app.services.pipelines.outside_in import PRODUCT_EXCERPT_CHARS

INSIGHTS = ExtractedInsights(
    product_capabilities=["Streams Postgres changes to Snowflake"],
    pain_points_addressed=["Schema changes break CDC pipelines"],
    summary="Managed CDC for Postgres.",
    domain="data engineering",
)

PASSING = ScoreResults(
    slop_score=2.0,
    vendor_speak_score=2.0,
    authenticity_score=8.0,
    specificity_score=8.0,
    persona_avg_score=8.0,
)
# Passes every gate but scores lower than PASSING
DECENT = ScoreResults(
    slop_score=3.0,
    vendor_speak_score=3.0,
    authenticity_score=7.0,
    specificity_score=7.0,
    persona_avg_score=7.0,
)

COMMUNITY = EvidenceBundle(
    outcome=ResearchOutcome.success("Practitioners hate babysitting Debezium."),
    evidence_level=EvidenceLevel.PARTIAL,
    source_counts={"deep_research": 1},
)
NO_COMMUNITY = EvidenceBundle(outcome=ResearchOutcome.failure("no community hits"))
COMPETITIVE = ResearchOutcome.success("Competitor X needs a Kafka cluster.")


def _result(text: str) -> GenerationResult:
    return GenerationResult(text=text, model="m", provider="anthropic")


def _unchanged(content: str, level, job_id=None) -> GroundingValidation:
    return GroundingValidation(content)


@pytest.fixture
def voice(fake_supabase):
    return fake_supabase.seed(
        "voice_profiles",
        {"name": "Practitioner", "slug": "practitioner", "scoring_thresholds": {}, "is_active": True},
    )


def _create_job(voice_id: str, pipeline: str, product_docs: str = "Acme CDC streams Postgres to Snowflake.") -> str:
    return str(
        create_job(
            JobInputs(
                product_docs=product_docs,
                voice_profile_ids=[voice_id],
                asset_types=["battlecard"],
                pipeline=pipeline,
            )
        )
    )


def _patch_steps(stack: ExitStack, generate: AsyncMock, scorer: AsyncMock) -> None:
    steps = "app.services.pipeline_steps"
    stack.enter_context(patch(f"{steps}.extract_insights", AsyncMock(return_value=INSIGHTS)))
    stack.enter_context(patch(f"{steps}.name_session_from_insights", AsyncMock(return_value=None)))
    stack.enter_context(patch(f"{steps}.get_banned_words_for_voice", AsyncMock(return_value=["leverage"])))
    stack.enter_context(patch(f"{steps}.generate", generate))
    stack.enter_context(patch(f"{steps}.score_content", scorer))
    stack.enter_context(patch(f"{steps}.deslop", AsyncMock(side_effect=lambda content, *a, **kw: content)))
    stack.enter_context(patch(f"{steps}.validate_grounding", AsyncMock(side_effect=_unchanged)))


def _patch_research(
    stack: ExitStack, module: str, community: EvidenceBundle = COMMUNITY, competitive: ResearchOutcome = COMPETITIVE
) -> None:
    pipeline = f"app.services.pipelines.{module}"
    stack.enter_context(patch(f"{pipeline}.run_community_research", AsyncMock(return_value=community)))
    stack.enter_context(patch(f"{pipeline}.run_competitive_research", AsyncMock(return_value=competitive)))


def _stored_asset(fake_supabase) -> dict:
    [asset] = fake_supabase.rows("messaging_assets")
    return asset


# =============================================================================
# Split research
# =============================================================================


@pytest.mark.asyncio
async def test_split_research_labels_both_research_sections(fake_supabase, voice):
    job_id = _create_job(voice["id"], "split-research")
    generate = AsyncMock(return_value=_result("Stop babysitting Debezium."))

    with ExitStack() as stack:
        _patch_steps(stack, generate, AsyncMock(return_value=PASSING))
        _patch_research(stack, "split_research")
        assert await run_generation_job(job_id) is True

    prompt = generate.await_args.args[0]
    assert "## Competitive Research\n\nCompetitor X needs a Kafka cluster." in prompt
    assert "## Practitioner Pain Research" in prompt
    assert prompt.index("## Practitioner Pain Research") < prompt.index("Practitioners hate babysitting Debezium.")

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Stop babysitting Debezium."
    assert asset["metadata"]["evidenceLevel"] == "partial"
    job = get_job(job_id)
    assert job["product_context"]["_evidenceLevel"] == "partial"
    [research_step] = [s for s in job["pipeline_steps"] if s["step"] == "research" and s["status"] == "completed"]
    assert research_step["detail"]["competitiveOk"] is True
    assert research_step["detail"]["practitionerOk"] is True


@pytest.mark.asyncio
async def test_split_research_survives_failed_competitive_research(fake_supabase, voice):
    job_id = _create_job(voice["id"], "split-research")
    generate = AsyncMock(return_value=_result("Stop babysitting Debezium."))

    with ExitStack() as stack:
        _patch_steps(stack, generate, AsyncMock(return_value=PASSING))
        _patch_research(stack, "split_research", competitive=ResearchOutcome.failure("search quota"))
        assert await run_generation_job(job_id) is True

    prompt = generate.await_args.args[0]
    assert "Competitor X" not in prompt
    assert "## Practitioner Pain Research" in prompt
    assert get_job(job_id)["status"] == "completed"


# =============================================================================
# Outside in
# =============================================================================


def _patch_outside_in(stack: ExitStack, draft_generate: AsyncMock, draft_scorer: AsyncMock) -> None:
    stack.enter_context(patch("app.services.pipelines.outside_in.generate", draft_generate))
    stack.enter_context(patch("app.services.pipelines.outside_in.score_content", draft_scorer))


@pytest.mark.asyncio
async def test_outside_in_starves_first_draft_of_product_docs(fake_supabase, voice):
    docs = "Acme CDC streams Postgres to Snowflake. " * 50 + "SECRET-PRICING-TABLE"
    assert len(docs) > PRODUCT_EXCERPT_CHARS
    job_id = _create_job(voice["id"], "outside-in", product_docs=docs)
    draft_generate = AsyncMock(return_value=_result("Pain-first draft."))
    layer_generate = AsyncMock(return_value=_result("Layered draft."))

    with ExitStack() as stack:
        _patch_steps(stack, layer_generate, AsyncMock(return_value=PASSING))
        _patch_research(stack, "outside_in")
        _patch_outside_in(stack, draft_generate, AsyncMock(return_value=DECENT))
        assert await run_generation_job(job_id) is True

    draft_prompt = draft_generate.await_args.args[0]
    assert "Practitioners hate babysitting Debezium." in draft_prompt
    assert "SECRET-PRICING-TABLE" not in draft_prompt
    assert draft_generate.await_args.kwargs["chain"] == "pain_first_draft"

    layer_call = layer_generate.await_args
    assert layer_call.kwargs["chain"] == "layer_product"
    assert "Pain-first draft." in layer_call.args[0]
    assert "Competitor X needs a Kafka cluster." in layer_call.args[0]

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Layered draft."
    assert asset["metadata"]["winner"] == "layered"


@pytest.mark.asyncio
async def test_outside_in_keeps_pain_first_draft_when_layering_hurts(fake_supabase, voice):
    job_id = _create_job(voice["id"], "outside-in")

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(return_value=_result("Layered draft.")), AsyncMock(return_value=DECENT))
        _patch_research(stack, "outside_in")
        _patch_outside_in(
            stack, AsyncMock(return_value=_result("Pain-first draft.")), AsyncMock(return_value=PASSING)
        )
        assert await run_generation_job(job_id) is True

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Pain-first draft."
    assert asset["metadata"]["winner"] == "pain-first"


@pytest.mark.asyncio
async def test_outside_in_synthesizes_pain_without_community_evidence(fake_supabase, voice):
    job_id = _create_job(voice["id"], "outside-in")
    draft_generate = AsyncMock(side_effect=[_result("On-call engineers dread ALTER TABLE."), _result("Draft.")])

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(return_value=_result("Layered draft.")), AsyncMock(return_value=PASSING))
        _patch_research(stack, "outside_in", community=NO_COMMUNITY)
        _patch_outside_in(stack, draft_generate, AsyncMock(return_value=DECENT))
        assert await run_generation_job(job_id) is True

    synth_call, draft_call = draft_generate.await_args_list
    assert synth_call.kwargs["chain"] == "synthesize_pain"
    assert "Synthesized Practitioner Pain" in draft_call.args[0]
    assert "On-call engineers dread ALTER TABLE." in draft_call.args[0]
    assert _stored_asset(fake_supabase)["metadata"]["evidenceLevel"] == "partial"
    assert any(s["step"] == "synthesize-pain" for s in get_job(job_id)["pipeline_steps"])


# =============================================================================
# Adversarial
# =============================================================================


def _patch_adversarial(stack: ExitStack, defend: AsyncMock, defended_scorer: AsyncMock) -> AsyncMock:
    attack = AsyncMock(return_value="Nobody believes sub-second lag.")
    pipeline = "app.services.pipelines.adversarial"
    stack.enter_context(patch(f"{pipeline}.attack_content", attack))
    stack.enter_context(patch(f"{pipeline}.defend_content", defend))
    stack.enter_context(patch(f"{pipeline}.score_content", defended_scorer))
    return attack


@pytest.mark.asyncio
async def test_adversarial_rewrites_each_round_against_the_last(fake_supabase, voice):
    job_id = _create_job(voice["id"], "adversarial")
    defend = AsyncMock(side_effect=["Defended once.", "Defended twice."])

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(return_value=_result("Initial draft.")), AsyncMock(return_value=DECENT))
        _patch_research(stack, "adversarial")
        attack = _patch_adversarial(stack, defend, AsyncMock(return_value=PASSING))
        assert await run_generation_job(job_id) is True

    assert attack.await_count == ATTACK_ROUNDS
    assert [c.args[0] for c in attack.await_args_list] == ["Initial draft.", "Defended once."]
    assert defend.await_args_list[1].args[1] == "Nobody believes sub-second lag."

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Defended twice."
    assert asset["metadata"]["winner"] == "defended"
    steps = [s["step"] for s in get_job(job_id)["pipeline_steps"]]
    assert "defend-r1-battlecard-practitioner" in steps
    assert "defend-r2-battlecard-practitioner" in steps


@pytest.mark.asyncio
async def test_adversarial_keeps_initial_draft_when_defense_scores_lower(fake_supabase, voice):
    job_id = _create_job(voice["id"], "adversarial")

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(return_value=_result("Initial draft.")), AsyncMock(return_value=PASSING))
        _patch_research(stack, "adversarial")
        _patch_adversarial(stack, AsyncMock(return_value="Defended."), AsyncMock(return_value=DECENT))
        assert await run_generation_job(job_id) is True

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Initial draft."
    assert asset["metadata"]["winner"] == "initial"


# =============================================================================
# Multi perspective
# =============================================================================


async def _perspective_generate(prompt: str, **kwargs) -> GenerationResult:
    if kwargs["chain"] == "perspective_synthesis":
        return _result("Synthesis draft.")
    angle = prompt.split("## PERSPECTIVE: ")[1].split("\n")[0]
    return _result(f"{angle} draft.")


async def _score_competitive_best(content: str, grounding, **kwargs) -> ScoreResults:
    return PASSING if content == "Competitive Positioning draft." else DECENT


@pytest.mark.asyncio
async def test_multi_perspective_keeps_best_of_four(fake_supabase, voice):
    job_id = _create_job(voice["id"], "multi-perspective")
    generate = AsyncMock(side_effect=_perspective_generate)
    scorer = AsyncMock(side_effect=_score_competitive_best)

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(), AsyncMock(return_value=PASSING))
        _patch_research(stack, "multi_perspective")
        stack.enter_context(patch("app.chains.multi_perspective.generate", generate))
        stack.enter_context(patch("app.chains.multi_perspective.score_content", scorer))
        assert await run_generation_job(job_id) is True

    assert generate.await_count == 4
    assert scorer.await_count == 4
    synthesis_prompt = generate.await_args_list[-1].args[0]
    for angle in ("Practitioner Empathy", "Competitive Positioning", "Thought Leadership"):
        assert f"{angle} draft." in synthesis_prompt

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Competitive Positioning draft."
    assert asset["metadata"]["winner"] == "Competitive Positioning"


@pytest.mark.asyncio
async def test_multi_perspective_tie_keeps_the_first_angle(fake_supabase, voice):
    job_id = _create_job(voice["id"], "multi-perspective")

    with ExitStack() as stack:
        _patch_steps(stack, AsyncMock(), AsyncMock(return_value=PASSING))
        _patch_research(stack, "multi_perspective")
        stack.enter_context(
            patch("app.chains.multi_perspective.generate", AsyncMock(side_effect=_perspective_generate))
        )
        stack.enter_context(
            patch("app.chains.multi_perspective.score_content", AsyncMock(return_value=PASSING))
        )
        assert await run_generation_job(job_id) is True

    asset = _stored_asset(fake_supabase)
    assert asset["content"] == "Practitioner Empathy draft."
    assert asset["metadata"]["winner"] == "Practitioner Empathy"

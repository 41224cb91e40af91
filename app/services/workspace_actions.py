"""Workspace actions: targeted improvements applied to a session's active version.

Every action reads the active version for (session, asset_type), does its work,
writes exactly one new version through create_version_and_activate and returns
an ActionResult carrying the new version and the scores it replaced.
"""

from dataclasses import dataclass
from datetime import datetime, timezone  # noqa: UP035
from typing import Any

from app.chains.detect_slop import analyze_slop, deslop
from app.chains.extract_insights import extract_insights
from app.chains.extract_keywords import extract_search_keywords
from app.chains.generate_banned_words import get_banned_words_for_voice
from app.chains.multi_perspective import generate_perspectives
from app.chains.run_research import build_community_prompt, run_grounded_research
from app.chains.score_content import score_content
from app.core.errors import ActionError, InsufficientEvidenceError, NoActiveVersionError, NotFoundError
from app.core.insight_formatters import (
    build_fallback_insights,
    format_insights_for_discovery,
    format_insights_for_research,
    format_insights_for_scoring,
)
from app.core.logging import get_logger
from app.core.prompt_builder import (
    INTERNAL_ASSET_TYPES,
    REFINEMENT_TEMPERATURE,
    build_system_prompt,
    build_user_prompt,
    load_template,
)
from app.core.quality_gates import DEFAULT_THRESHOLDS, pick_best_result, total_quality_score
from app.core.schemas_generation import EvidenceLevel, JobInputs, PipelineName, VoiceProfile
from app.core.schemas_insights import ExtractedInsights
from app.core.schemas_scoring import ScoreResults, ScoringThresholds
from app.core.schemas_workspace import ActionName, ActionResult, VersionSource
from app.db.jobs import get_job
from app.db.pain_points import format_pain_point_context, get_pain_point
from app.db.session_versions import create_version_and_activate, get_active_version
from app.db.sessions import get_session
from app.db.voice_profiles import get_voice_profile
from app.graphs.adversarial_refinement_graph import run_adversarial_loop
from app.services.deep_research import run_deep_research
from app.services.llm_gateway import generate
from app.services.pipeline_steps import generate_and_score, refine_if_needed

logger = get_logger(__name__)

MIN_COMMUNITY_EVIDENCE_CHARS = 100
CONTENT_CHARS = 8000
RESEARCH_CHARS = 6000


@dataclass
class ActionContext:
    """The session, the version being acted on and the voice that judges it."""

    session: dict[str, Any]
    asset_type: str
    active: dict[str, Any] | None
    voice: VoiceProfile | None

    @property
    def session_id(self) -> str:
        return str(self.session["id"])

    @property
    def content(self) -> str:
        return self.active["content"] if self.active else ""

    @property
    def thresholds(self) -> ScoringThresholds:
        return self.voice.scoring_thresholds if self.voice else DEFAULT_THRESHOLDS

    @property
    def previous_scores(self) -> ScoreResults | None:
        return ScoreResults.from_row(self.active) if self.active else None

    @property
    def product_docs(self) -> str:
        return self.session.get("product_context") or ""

    def require_voice(self) -> VoiceProfile:
        if not self.voice:
            raise ActionError(f"Session {self.session_id} has no voice profile")
        return self.voice


def load_action_context(session_id: str, asset_type: str, require_active: bool = True) -> ActionContext:
    """
    Raises:
        NotFoundError: If the session does not exist
        NoActiveVersionError: If require_active and the pair has no versions
    """
    session = get_session(session_id)
    if not session:
        raise NotFoundError(f"Session {session_id} not found")

    active = get_active_version(session_id, asset_type)
    if require_active and not active:
        raise NoActiveVersionError(session_id, asset_type)

    # The voice that produced the version wins over the session default
    voice_id = ((active or {}).get("source_detail") or {}).get("voiceId") or session.get("voice_profile_id")
    voice = get_voice_profile(voice_id) if voice_id else None
    return ActionContext(session=session, asset_type=asset_type, active=active, voice=voice)


async def _session_insights(ctx: ActionContext) -> ExtractedInsights:
    insights = await extract_insights(ctx.product_docs, session_id=ctx.session_id)
    return insights or build_fallback_insights(ctx.product_docs)


async def _store(
    ctx: ActionContext,
    content: str,
    source: VersionSource,
    detail: dict[str, Any],
    scores: ScoreResults,
    thresholds: ScoringThresholds | None = None,
) -> ActionResult:
    detail = {"previousVersion": (ctx.active or {}).get("version_number"), **detail}
    if ctx.voice and "voiceId" not in detail:
        detail["voiceId"] = ctx.voice.id
    version = await create_version_and_activate(
        ctx.session_id,
        ctx.asset_type,
        content,
        source.value,
        detail,
        scores,
        thresholds or ctx.thresholds,
    )
    return ActionResult(version=version, previous_scores=ctx.previous_scores)


# =============================================================================
# Actions
# =============================================================================


async def run_deslop_action(session_id: str, asset_type: str) -> ActionResult:
    """Strip flagged filler from the active version and re-score."""
    ctx = load_action_context(session_id, asset_type)
    analysis = await analyze_slop(ctx.content, session_id=ctx.session_id)
    cleaned = await deslop(ctx.content, analysis, session_id=ctx.session_id)
    scores = await score_content(cleaned, session_id=ctx.session_id)
    return await _store(
        ctx,
        cleaned,
        VersionSource.DESLOP,
        {"slopScoreBefore": analysis.score, "matches": len(analysis.matches)},
        scores,
    )


async def run_regenerate_action(session_id: str, asset_type: str) -> ActionResult:
    """
    Regenerate from the full original context.

    Uses the same prompt builder and refinement pass as the pipelines, with the
    research and evidence level the originating job recorded.
    """
    ctx = load_action_context(session_id, asset_type, require_active=False)
    voice = ctx.require_voice()

    job = get_job(ctx.session["job_id"]) if ctx.session.get("job_id") else None
    job_context = (job or {}).get("product_context") or {}
    inputs = JobInputs.model_validate(job_context)
    research = job_context.get("_researchContext") or ""
    evidence_level = EvidenceLevel(job_context.get("_evidenceLevel") or EvidenceLevel.PRODUCT_ONLY.value)

    insights = await _session_insights(ctx)
    grounding = [format_insights_for_scoring(insights)]
    banned_words = await get_banned_words_for_voice(voice, insights)
    system = build_system_prompt(voice, asset_type, evidence_level, inputs.pipeline, banned_words)
    user = build_user_prompt(
        insights, load_template(asset_type), research, inputs.existing_messaging, inputs.prompt
    )

    scored = await generate_and_score(
        user, system, asset_type, grounding, model=inputs.model, chain="regenerate", session_id=ctx.session_id
    )
    outcome = await refine_if_needed(
        scored, voice.scoring_thresholds, voice, asset_type, system, grounding,
        model=inputs.model, session_id=ctx.session_id,
    )
    return await _store(
        ctx,
        outcome.content,
        VersionSource.REGENERATE,
        {
            "researchReused": bool(research),
            "researchLength": len(research),
            "evidenceLevel": evidence_level.value,
            **outcome.metadata,
        },
        outcome.scores,
    )


VOICE_CHANGE_PROMPT = """Rewrite the following {asset_label} content in this voice:

## Voice: {voice_name}
{voice_guide}

## Content to Rewrite
{content}

Keep every factual claim and the structure. Rewrite in the new voice. Output ONLY the rewritten content."""


async def run_voice_change_action(session_id: str, asset_type: str, voice_profile_id: str | None) -> ActionResult:
    """Rewrite the active version into another voice, gated by that voice's thresholds."""
    if not voice_profile_id:
        raise ActionError("change-voice requires a voice_profile_id")
    ctx = load_action_context(session_id, asset_type)
    new_voice = get_voice_profile(voice_profile_id)
    if not new_voice:
        raise NotFoundError(f"Voice profile {voice_profile_id} not found")

    response = await generate(
        VOICE_CHANGE_PROMPT.format(
            asset_label=asset_type.replace("_", " "),
            voice_name=new_voice.name,
            voice_guide=new_voice.voice_guide,
            content=ctx.content,
        ),
        temperature=REFINEMENT_TEMPERATURE,
        workflow="workspace",
        chain="voice_change",
        session_id=ctx.session_id,
    )
    scores = await score_content(response.text, session_id=ctx.session_id)
    return await _store(
        ctx,
        response.text,
        VersionSource.VOICE_CHANGE,
        {
            "previousVoiceId": ctx.voice.id if ctx.voice else None,
            "voiceId": new_voice.id,
            "voiceName": new_voice.name,
        },
        scores,
        new_voice.scoring_thresholds,
    )


async def run_adversarial_action(session_id: str, asset_type: str) -> ActionResult:
    """
    Up to three fix/elevate iterations with plateau detection.

    Returns version=None when no iteration improved the content.
    """
    ctx = load_action_context(session_id, asset_type)
    voice = ctx.voice or VoiceProfile(id="", name="Default")

    result = await run_adversarial_loop(
        ctx.content,
        asset_type,
        voice,
        ctx.thresholds,
        session_id=ctx.session_id,
    )
    if result.content == ctx.content:
        logger.info(
            f"Adversarial loop found no improvement ({result.stop_reason})",
            extra={"session_id": ctx.session_id, "asset_type": asset_type},
        )
        return ActionResult(version=None, previous_scores=ctx.previous_scores)

    return await _store(
        ctx,
        result.content,
        VersionSource.ADVERSARIAL,
        {
            "iterations": result.iterations,
            "mode": result.mode,
            "stopReason": result.stop_reason,
            "history": result.history,
            "finalScores": result.scores.as_columns(),
        },
        result.scores,
    )


COMPETITIVE_DIVE_PROMPT = """Analyze the product context below and identify the 3-5 most direct
competitors. Then research each competitor in depth.

## Step 1: Identify Competitors
Infer the most direct competitors from the product category, target audience and capabilities.

## Step 2: For Each Competitor, Research
- Specific product limitations (with version numbers where available)
- Recent pricing or packaging changes (with dates)
- Migration complaints from practitioners in community forums
- Claims that contradict our product's positioning

## Step 3: Label Each Finding
Tag every finding: [official docs], [community sentiment] or [analyst coverage].

## Product Context
{product_context}

## Current {asset_label} Content
{content}

Provide detailed findings with specific examples and source URLs."""

COMPETITIVE_ENRICH_PROMPT = """Enrich this {asset_label} with competitive intelligence.

## Current Content
{content}

## Competitive Research
{research}

Rewrite the content to:
1. Sharpen competitive differentiation where research reveals gaps
2. {competitor_rule}
3. Strengthen claims with market evidence
4. Keep the same structure and format
5. Maintain a practitioner-first voice, no vendor-speak

Output ONLY the enriched content."""


def _with_sources(text: str, sources: list[dict[str, str]]) -> str:
    if not sources:
        return text
    listing = "\n".join(f"- {s['title']}: {s['url']}" for s in sources)
    return f"{text}\n\nSources:\n{listing}"


async def run_competitive_dive_action(session_id: str, asset_type: str) -> ActionResult:
    """Deep competitor research (grounded search fallback) woven into the active version."""
    ctx = load_action_context(session_id, asset_type)
    insights = await _session_insights(ctx)
    prompt = COMPETITIVE_DIVE_PROMPT.format(
        product_context=format_insights_for_research(insights),
        asset_label=asset_type.replace("_", " "),
        content=ctx.content[:3000],
    )

    research_source = "deep_research"
    try:
        deep = await run_deep_research(prompt, chain="competitive_dive", session_id=ctx.session_id)
        research = _with_sources(deep.text, deep.sources)
    except Exception as e:
        logger.warning(f"Deep research failed, falling back to grounded search: {e}")
        research_source = "grounded_search"
        grounded = await run_grounded_research(prompt, "competitive_dive", session_id=ctx.session_id)
        if not grounded.ok:
            raise InsufficientEvidenceError(f"Competitive research returned nothing: {grounded.error}") from e
        research = _with_sources(grounded.text, grounded.sources)

    competitor_rule = (
        "Name competitors explicitly with specific differentiators"
        if asset_type in INTERNAL_ASSET_TYPES
        else "Reference competitive gaps without naming competitors directly"
    )
    response = await generate(
        COMPETITIVE_ENRICH_PROMPT.format(
            asset_label=asset_type.replace("_", " "),
            content=ctx.content[:CONTENT_CHARS],
            research=research[:RESEARCH_CHARS],
            competitor_rule=competitor_rule,
        ),
        temperature=REFINEMENT_TEMPERATURE,
        workflow="workspace",
        chain="competitive_enrich",
        session_id=ctx.session_id,
    )
    scores = await score_content(
        response.text, [format_insights_for_scoring(insights)], session_id=ctx.session_id
    )
    return await _store(
        ctx,
        response.text,
        VersionSource.COMPETITIVE_DIVE,
        {"researchSource": research_source, "researchLength": len(research)},
        scores,
    )


COMMUNITY_REWRITE_PROMPT = """Rewrite this {asset_label} using real community evidence.

## Current Content
{content}

## Community Evidence
{evidence}

Rewrite the content to:
1. Ground claims in specific community discussions
2. Use the language practitioners actually use
3. Reference specific pain points raised in the community
4. Keep the same structure and format
5. Do NOT introduce claims that the community evidence above does not support. Preserve the
   factual accuracy of the original content.

Output ONLY the rewritten content."""


async def run_community_check_action(session_id: str, asset_type: str) -> ActionResult:
    """
    Ground the active version in practitioner evidence from one deep-research query.

    Raises:
        KeywordExtractionError: If no search phrases could be inferred
        InsufficientEvidenceError: If research returns under 100 characters
    """
    ctx = load_action_context(session_id, asset_type)
    insights = await _session_insights(ctx)

    pain_point = get_pain_point(ctx.session["pain_point_id"]) if ctx.session.get("pain_point_id") else None
    pain_context = format_pain_point_context(pain_point) if pain_point else ""
    discovery_context = format_insights_for_discovery(insights)
    keywords, communities = await extract_search_keywords(
        [pain_context, discovery_context], session_id=ctx.session_id
    )

    focus = f"Search phrases practitioners use: {', '.join(keywords)}"
    if communities:
        focus += f"\nCommunities to prioritise: {', '.join(communities)}"
    try:
        result = await run_deep_research(
            build_community_prompt(insights, focus), chain="community_check", session_id=ctx.session_id
        )
        evidence, sources = result.text, result.sources
    except Exception as e:
        logger.warning(f"Community deep research failed: {e}", extra={"session_id": ctx.session_id})
        evidence, sources = "", []

    if len(evidence.strip()) < MIN_COMMUNITY_EVIDENCE_CHARS:
        raise InsufficientEvidenceError("No community evidence found for the extracted keywords")

    evidence = _with_sources(evidence, sources)
    response = await generate(
        COMMUNITY_REWRITE_PROMPT.format(
            asset_label=asset_type.replace("_", " "),
            content=ctx.content[:CONTENT_CHARS],
            evidence=evidence[:CONTENT_CHARS],
        ),
        temperature=REFINEMENT_TEMPERATURE,
        workflow="workspace",
        chain="community_rewrite",
        session_id=ctx.session_id,
    )
    scores = await score_content(
        response.text, [format_insights_for_scoring(insights)], session_id=ctx.session_id
    )
    return await _store(
        ctx,
        response.text,
        VersionSource.COMMUNITY_CHECK,
        {
            "keywords": keywords,
            "communities": communities,
            "sourceCount": len(sources),
            "researchLength": len(evidence),
        },
        scores,
    )


async def run_multi_perspective_action(session_id: str, asset_type: str) -> ActionResult:
    """Three angles plus synthesis seeded from the active version; the best of four wins."""
    ctx = load_action_context(session_id, asset_type)
    voice = ctx.require_voice()
    insights = await _session_insights(ctx)
    template = load_template(asset_type)

    banned_words = await get_banned_words_for_voice(voice, insights)
    system = build_system_prompt(
        voice, asset_type, None, PipelineName.MULTI_PERSPECTIVE.value, banned_words
    )
    base_prompt = build_user_prompt(
        insights,
        template,
        existing_messaging=ctx.content,
        focus="Rework the existing messaging above. Keep what works and every supported claim.",
    )
    candidates = await generate_perspectives(
        base_prompt,
        system,
        asset_type,
        template,
        [format_insights_for_scoring(insights)],
        session_id=ctx.session_id,
    )
    best = pick_best_result(candidates)
    return await _store(
        ctx,
        best.content,
        VersionSource.MULTI_PERSPECTIVE,
        {
            "winningPerspective": best.label,
            "perspectiveScores": {c.label: round(total_quality_score(c.scores), 1) for c in candidates},
        },
        best.scores,
        voice.scoring_thresholds,
    )


async def create_edit_version(session_id: str, asset_type: str, content: str) -> dict[str, Any]:
    """Store a user's inline edit as a new scored version."""
    ctx = load_action_context(session_id, asset_type, require_active=False)
    scores = await score_content(content, session_id=ctx.session_id)
    result = await _store(ctx, content, VersionSource.EDIT, {}, scores)
    return result.version


async def create_chat_version(session_id: str, asset_type: str, content: str, message_id: str) -> dict[str, Any]:
    """Store content accepted from a chat reply as a new scored version."""
    ctx = load_action_context(session_id, asset_type, require_active=False)
    scores = await score_content(content, session_id=ctx.session_id)
    result = await _store(
        ctx,
        content,
        VersionSource.CHAT,
        {"messageId": message_id, "acceptedAt": datetime.now(timezone.utc).isoformat()},  # noqa: UP017
        scores,
    )
    return result.version


async def run_action(
    action: ActionName,
    session_id: str,
    asset_type: str,
    voice_profile_id: str | None = None,
) -> ActionResult:
    """Dispatch a workspace action by name."""
    if action == ActionName.CHANGE_VOICE:
        return await run_voice_change_action(session_id, asset_type, voice_profile_id)

    handlers = {
        ActionName.DESLOP: run_deslop_action,
        ActionName.REGENERATE: run_regenerate_action,
        ActionName.ADVERSARIAL: run_adversarial_action,
        ActionName.COMPETITIVE_DIVE: run_competitive_dive_action,
        ActionName.COMMUNITY_CHECK: run_community_check_action,
        ActionName.MULTI_PERSPECTIVE: run_multi_perspective_action,
    }
    return await handlers[action](session_id, asset_type)

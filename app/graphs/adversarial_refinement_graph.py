"""Adversarial refinement LangGraph: score, improve, rescore until gates pass or progress stalls.

Two modes. Content that fails its quality gates is in "fix" mode and the issue
list names each failing axis. Content that already passes is in "elevate" mode
and is pushed toward near-perfect targets instead. Every iteration must strictly
raise the total quality score or the loop stops and keeps the previous content.
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from langgraph.graph import END, StateGraph

from app.chains.detect_slop import deslop
from app.chains.score_content import score_content
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.prompt_builder import build_issue_list
from app.core.quality_gates import check_quality_gates, total_quality_score
from app.core.schemas_generation import VoiceProfile
from app.core.schemas_scoring import ScoreResults, ScoringThresholds
from app.services.llm_gateway import generate

logger = get_logger(__name__)

ELEVATION_TARGETS = ScoringThresholds(
    slop_max=2.0,
    vendor_speak_max=2.0,
    authenticity_min=9.0,
    specificity_min=9.0,
    persona_min=9.0,
)

IMPROVE_TEMPERATURE = 0.4

FIX_PROMPT = """Fix these quality issues in this {asset_label}:
{issues}

## Content
{content}

Keep the structure, format and every factual claim. Output ONLY the fixed content."""

ELEVATE_PROMPT = """This {asset_label} already passes its quality gates. Elevate it from good to
exceptional. Push each of these toward near-perfect:
{issues}

## Content
{content}

Do not pad it, and do not add claims the content can't support. Output ONLY the elevated content."""


@dataclass
class AdversarialLoopState:
    """State for the adversarial refinement graph."""

    # Input fields
    content: str
    asset_type: str
    voice: VoiceProfile
    thresholds: ScoringThresholds
    grounding: list[str] = field(default_factory=list)
    system: str | None = None
    model: str | None = None
    session_id: UUID | str | None = None
    max_iterations: int = 3

    # Processing state
    original_content: str = ""
    candidate: str = ""
    scores: ScoreResults | None = None
    initial_scores: ScoreResults | None = None
    best_total: float = 0.0
    mode: str = "fix"
    iteration: int = 0

    # Output
    stop_reason: str = ""
    history: list[dict[str, Any]] = field(default_factory=list)


def _targets(state: AdversarialLoopState) -> ScoringThresholds:
    return ELEVATION_TARGETS if state.mode == "elevate" else state.thresholds


async def assess(state: AdversarialLoopState) -> dict[str, Any]:
    """Score the starting content and pick the mode."""
    scores = await score_content(state.content, state.grounding, session_id=state.session_id)
    mode = "elevate" if check_quality_gates(scores, state.thresholds) else "fix"
    total = total_quality_score(scores)

    stop_reason = ""
    if mode == "elevate" and check_quality_gates(scores, ELEVATION_TARGETS):
        stop_reason = "already_elevated"

    logger.info(
        f"Adversarial loop starting in {mode} mode (total {total:.1f})",
        extra={"session_id": str(state.session_id), "asset_type": state.asset_type},
    )
    return {
        "original_content": state.content,
        "scores": scores,
        "initial_scores": scores,
        "best_total": total,
        "mode": mode,
        "stop_reason": stop_reason,
    }


async def improve(state: AdversarialLoopState) -> dict[str, Any]:
    """Deslop if needed, then rewrite against the current issue list."""
    iteration = state.iteration + 1
    targets = _targets(state)
    content = state.content

    if state.scores.slop_score > targets.slop_max:
        content = await deslop(content, state.scores.slop_analysis, session_id=state.session_id)

    issues = "\n".join(build_issue_list(state.scores, targets, state.voice))
    prompt = ELEVATE_PROMPT if state.mode == "elevate" else FIX_PROMPT
    try:
        response = await generate(
            prompt.format(
                asset_label=state.asset_type.replace("_", " "),
                issues=issues or "- Tighten the language and sharpen every claim",
                content=content,
            ),
            system=state.system,
            model=state.model,
            temperature=IMPROVE_TEMPERATURE,
            workflow="workspace",
            chain="adversarial_loop",
            session_id=state.session_id,
        )
    except Exception as e:
        logger.warning(
            f"Adversarial iteration {iteration} generation failed, stopping: {e}",
            extra={"session_id": str(state.session_id)},
        )
        return {"iteration": iteration, "stop_reason": "generation_error"}

    return {"iteration": iteration, "candidate": response.text}


async def rescore(state: AdversarialLoopState) -> dict[str, Any]:
    """Accept the candidate only if it strictly raises the total score."""
    scores = await score_content(state.candidate, state.grounding, session_id=state.session_id)
    total = total_quality_score(scores)
    entry = {"iteration": state.iteration, "total": round(total, 2), "mode": state.mode}

    if total <= state.best_total:
        logger.info(
            f"Adversarial loop plateaued at iteration {state.iteration} ({total:.1f} <= {state.best_total:.1f})",
            extra={"session_id": str(state.session_id)},
        )
        return {
            "history": state.history + [{**entry, "accepted": False}],
            "stop_reason": "plateau",
        }

    update: dict[str, Any] = {
        "content": state.candidate,
        "scores": scores,
        "best_total": total,
        "history": state.history + [{**entry, "accepted": True}],
    }
    if check_quality_gates(scores, _targets(state)):
        update["stop_reason"] = "elevated" if state.mode == "elevate" else "passed_gates"
    elif state.iteration >= state.max_iterations:
        update["stop_reason"] = "max_iterations"
    return update


def should_continue(state: AdversarialLoopState) -> str:
    return "end" if state.stop_reason else "improve"


def _after_improve(state: AdversarialLoopState) -> str:
    return "end" if state.stop_reason else "rescore"


def _build_graph() -> StateGraph:
    """Build the LangGraph for the adversarial refinement loop."""
    graph = StateGraph(AdversarialLoopState)

    graph.add_node("assess", assess)
    graph.add_node("improve", improve)
    graph.add_node("rescore", rescore)

    graph.set_entry_point("assess")
    graph.add_conditional_edges("assess", should_continue, {"improve": "improve", "end": END})
    graph.add_conditional_edges("improve", _after_improve, {"rescore": "rescore", "end": END})
    graph.add_conditional_edges("rescore", should_continue, {"improve": "improve", "end": END})

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


@dataclass
class AdversarialLoopResult:
    content: str
    scores: ScoreResults
    initial_scores: ScoreResults
    iterations: int
    mode: str
    stop_reason: str
    history: list[dict[str, Any]]


async def run_adversarial_loop(
    content: str,
    asset_type: str,
    voice: VoiceProfile,
    thresholds: ScoringThresholds,
    grounding: list[str] | None = None,
    system: str | None = None,
    model: str | None = None,
    session_id: UUID | str | None = None,
    max_iterations: int | None = None,
) -> AdversarialLoopResult:
    """
    Run the adversarial refinement graph.

    Args:
        content: Starting content
        asset_type: Asset type being refined
        voice: Voice whose guide shapes the issue list
        thresholds: Quality gates deciding fix vs elevate mode
        grounding: Product facts for the specificity scorer
        system: Optional system prompt for rewrites
        model: Optional generation model override
        session_id: Session to attribute LLM usage to
        max_iterations: Iteration cap; defaults to ADVERSARIAL_MAX_ITERATIONS

    Returns:
        AdversarialLoopResult with the best content found and why the loop stopped
    """
    initial_state = AdversarialLoopState(
        content=content,
        asset_type=asset_type,
        voice=voice,
        thresholds=thresholds,
        grounding=grounding or [],
        system=system,
        model=model,
        session_id=session_id,
        max_iterations=max_iterations or get_settings().ADVERSARIAL_MAX_ITERATIONS,
    )

    final_state = await _compiled_graph.ainvoke(initial_state)

    result = AdversarialLoopResult(
        content=final_state["content"],
        scores=final_state["scores"],
        initial_scores=final_state["initial_scores"],
        iterations=final_state.get("iteration", 0),
        mode=final_state.get("mode", "fix"),
        stop_reason=final_state.get("stop_reason", ""),
        history=final_state.get("history", []),
    )
    logger.info(
        f"Completed adversarial loop: {result.iterations} iterations, stop={result.stop_reason}",
        extra={"session_id": str(session_id), "asset_type": asset_type},
    )
    return result

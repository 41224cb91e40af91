"""Quality gate checks and best-candidate selection over scored content."""

from collections.abc import Sequence
from typing import TypeVar

from app.core.schemas_scoring import ScoredContent, ScoreResults, ScoringThresholds

DEFAULT_THRESHOLDS = ScoringThresholds()

C = TypeVar("C", bound=ScoredContent)


def check_quality_gates(scores: ScoreResults, thresholds: ScoringThresholds | None = None) -> bool:
    """True iff every one of the five axes is on the right side of its threshold."""
    t = thresholds or DEFAULT_THRESHOLDS
    return (
        scores.slop_score <= t.slop_max
        and scores.vendor_speak_score <= t.vendor_speak_max
        and scores.authenticity_score >= t.authenticity_min
        and scores.specificity_score >= t.specificity_min
        and scores.persona_avg_score >= t.persona_min
    )


def failing_axes(scores: ScoreResults, thresholds: ScoringThresholds) -> list[dict]:
    """Describe each failing axis with its actual value, target and gap."""
    checks = [
        ("slop", scores.slop_score, thresholds.slop_max, "max"),
        ("vendor_speak", scores.vendor_speak_score, thresholds.vendor_speak_max, "max"),
        ("authenticity", scores.authenticity_score, thresholds.authenticity_min, "min"),
        ("specificity", scores.specificity_score, thresholds.specificity_min, "min"),
        ("persona", scores.persona_avg_score, thresholds.persona_min, "min"),
    ]
    failures = []
    for axis, actual, target, kind in checks:
        failed = actual > target if kind == "max" else actual < target
        if failed:
            failures.append(
                {
                    "axis": axis,
                    "actual": actual,
                    "target": target,
                    "kind": kind,
                    "gap": round(abs(actual - target), 1),
                }
            )
    return failures


def total_quality_score(scores: ScoreResults) -> float:
    """Scalar ranking key: inverted lower-is-better axes plus the other three."""
    return (
        (10 - scores.slop_score)
        + (10 - scores.vendor_speak_score)
        + scores.authenticity_score
        + scores.specificity_score
        + scores.persona_avg_score
    )


def pick_best_result(candidates: Sequence[C]) -> C:
    """
    Return the candidate with the highest total quality score.

    Ties keep the earliest candidate, so callers list the incumbent first.

    Raises:
        ValueError: If candidates is empty
    """
    if not candidates:
        raise ValueError("pick_best_result requires at least one candidate")

    best = candidates[0]
    best_total = total_quality_score(best.scores)
    for candidate in candidates[1:]:
        total = total_quality_score(candidate.scores)
        if total > best_total:
            best, best_total = candidate, total
    return best

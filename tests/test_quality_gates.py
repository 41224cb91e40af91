"""Tests for quality gates and best-candidate selection."""

import pytest

from app.core.quality_gates import (
    DEFAULT_THRESHOLDS,
    check_quality_gates,
    failing_axes,
    pick_best_result,
    total_quality_score,
)
from app.core.schemas_scoring import ScoredContent, ScoreResults, ScoringThresholds


def _scores(slop=3.0, vendor=3.0, auth=7.0, spec=7.0, persona=7.0) -> ScoreResults:
    return ScoreResults(
        slop_score=slop,
        vendor_speak_score=vendor,
        authenticity_score=auth,
        specificity_score=spec,
        persona_avg_score=persona,
    )


def test_passing_scores_pass_default_gates():
    assert check_quality_gates(_scores()) is True


def test_boundary_values_pass():
    scores = _scores(slop=5.0, vendor=5.0, auth=6.0, spec=6.0, persona=6.0)
    assert check_quality_gates(scores, DEFAULT_THRESHOLDS) is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"slop": 5.1},
        {"vendor": 6.0},
        {"auth": 5.9},
        {"spec": 2.0},
        {"persona": 0.0},
    ],
)
def test_any_single_failing_axis_fails_gate(overrides):
    assert check_quality_gates(_scores(**overrides)) is False


def test_gates_are_monotone_in_improvement():
    """Improving any axis of passing content never makes it fail."""
    base = _scores()
    assert check_quality_gates(base)

    improved = [
        _scores(slop=1.0),
        _scores(vendor=0.0),
        _scores(auth=10.0),
        _scores(spec=9.5),
        _scores(persona=8.0),
    ]
    for scores in improved:
        assert check_quality_gates(scores)


def test_thresholds_accept_camel_case_from_voice_rows():
    thresholds = ScoringThresholds.model_validate({"slopMax": 3, "authenticityMin": 8})
    assert thresholds.slop_max == 3
    assert thresholds.authenticity_min == 8
    assert check_quality_gates(_scores(slop=4.0), thresholds) is False


def test_failing_axes_reports_gap():
    failures = failing_axes(_scores(slop=7.5, spec=4.0), DEFAULT_THRESHOLDS)

    axes = {f["axis"]: f for f in failures}
    assert set(axes) == {"slop", "specificity"}
    assert axes["slop"]["gap"] == 2.5
    assert axes["slop"]["kind"] == "max"
    assert axes["specificity"]["gap"] == 2.0


def test_total_quality_score_inverts_lower_is_better_axes():
    assert total_quality_score(_scores(slop=0, vendor=0, auth=10, spec=10, persona=10)) == 50
    assert total_quality_score(_scores(slop=10, vendor=10, auth=0, spec=0, persona=0)) == 0


def test_pick_best_returns_highest_total():
    weak = ScoredContent(content="weak", scores=_scores(slop=8.0))
    strong = ScoredContent(content="strong", scores=_scores(slop=1.0))

    assert pick_best_result([weak, strong]) is strong


def test_pick_best_is_idempotent():
    candidates = [
        ScoredContent(content="a", scores=_scores(auth=6.5)),
        ScoredContent(content="b", scores=_scores(auth=8.0)),
        ScoredContent(content="c", scores=_scores(auth=7.0)),
    ]
    best = pick_best_result(candidates)

    assert pick_best_result([best]) is best
    assert pick_best_result(candidates) is best


def test_pick_best_ties_keep_first():
    first = ScoredContent(content="first", scores=_scores())
    second = ScoredContent(content="second", scores=_scores())

    assert pick_best_result([first, second]) is first


def test_pick_best_rejects_empty():
    with pytest.raises(ValueError):
        pick_best_result([])

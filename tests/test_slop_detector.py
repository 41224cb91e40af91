"""Tests for slop pattern detection and deslop."""

from unittest.mock import AsyncMock, patch

import pytest

from app.chains.detect_slop import analyze_slop, calculate_base_score, deslop, detect_patterns
from app.core.schemas_scoring import SlopAnalysis, SlopMatch
from app.services.llm_gateway import GenerationResult

SLOPPY = (
    "In today's fast-paced world, let's dive in. This game-changer will truly "
    "revolutionize how you leverage your ecosystem. At the end of the day, it's a game changer."
)


def _result(text: str) -> GenerationResult:
    return GenerationResult(text=text, model="m", provider="anthropic")


def test_detect_patterns_finds_every_occurrence_in_order():
    matches = detect_patterns(SLOPPY)
    patterns = [m.pattern for m in matches]

    assert "let's dive in" in patterns
    assert "game-changer" in patterns
    assert "at the end of the day" in patterns
    assert patterns.index("let's dive in") < patterns.index("at the end of the day")


def test_clean_content_has_zero_base_score():
    content = "Replication lag stays under 400ms at 20k writes per second on a db.r6g.large."

    assert detect_patterns(content) == []
    assert calculate_base_score([], len(content)) == 0.0


def test_base_score_caps_at_ten():
    matches = [SlopMatch(category="overused", pattern="leverage", context="")] * 50
    assert calculate_base_score(matches, 200) == 10.0


@pytest.mark.asyncio
async def test_analyze_slop_uses_neutral_ai_score_when_llm_fails():
    with patch("app.chains.detect_slop.generate", AsyncMock(side_effect=RuntimeError("boom"))):
        analysis = await analyze_slop("Plain factual text about replication lag.")

    assert analysis.ai_score == 5.0
    assert analysis.base_score == 0.0
    assert analysis.score == 3.0


@pytest.mark.asyncio
async def test_deslop_skips_clean_content():
    generate = AsyncMock()
    analysis = SlopAnalysis(score=1.0)

    with patch("app.chains.detect_slop.generate", generate):
        result = await deslop("Already clean.", analysis)

    assert result == "Already clean."
    generate.assert_not_called()


@pytest.mark.asyncio
async def test_deslop_rejects_suspiciously_short_rewrite():
    analysis = SlopAnalysis(score=8.0, matches=detect_patterns(SLOPPY))

    with patch("app.chains.detect_slop.generate", AsyncMock(return_value=_result("Short."))):
        result = await deslop(SLOPPY, analysis)

    assert result == SLOPPY


@pytest.mark.asyncio
async def test_deslop_returns_rewrite():
    rewrite = "This tool changes how you run your data pipelines. It replaces the nightly batch job."
    analysis = SlopAnalysis(score=8.0, matches=detect_patterns(SLOPPY))
    generate = AsyncMock(return_value=_result(rewrite))

    with patch("app.chains.detect_slop.generate", generate):
        result = await deslop(SLOPPY, analysis)

    assert result == rewrite
    prompt = generate.call_args[0][0]
    assert "let's dive in" in prompt

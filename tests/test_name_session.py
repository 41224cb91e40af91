"""Tests for naming sessions from extracted insights."""

from unittest.mock import AsyncMock, patch

import pytest

from app.chains.name_session import name_session_from_insights
from app.core.schemas_insights import ExtractedInsights
from app.services.llm_gateway import GenerationResult

INSIGHTS = ExtractedInsights(summary="Managed CDC that streams Postgres changes.", domain="data engineering")


def _result(text: str) -> GenerationResult:
    return GenerationResult(text=text, model="m", provider="anthropic")


@pytest.mark.asyncio
async def test_renames_linked_session_with_cleaned_title():
    session = {"id": "s1", "name": "New Session"}
    generate = AsyncMock(return_value=_result('"Postgres CDC Without Kafka."\nextra line'))

    with (
        patch("app.chains.name_session.get_session_by_job", return_value=session),
        patch("app.chains.name_session.generate", generate),
        patch("app.chains.name_session.update_session") as update,
    ):
        name = await name_session_from_insights("job-1", INSIGHTS, ["battlecard"])

    assert name == "Postgres CDC Without Kafka"
    update.assert_called_once_with("s1", {"name": "Postgres CDC Without Kafka"})
    assert generate.await_args.kwargs["chain"] == "name_session"


@pytest.mark.asyncio
async def test_job_without_session_is_skipped():
    generate = AsyncMock()

    with (
        patch("app.chains.name_session.get_session_by_job", return_value=None),
        patch("app.chains.name_session.generate", generate),
    ):
        assert await name_session_from_insights("job-1", INSIGHTS, ["battlecard"]) is None

    generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_insights_without_topic_are_skipped():
    generate = AsyncMock()

    with (
        patch("app.chains.name_session.get_session_by_job", return_value={"id": "s1"}),
        patch("app.chains.name_session.generate", generate),
    ):
        assert await name_session_from_insights("job-1", ExtractedInsights(), ["battlecard"]) is None

    generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_llm_failure_is_swallowed():
    with (
        patch("app.chains.name_session.get_session_by_job", return_value={"id": "s1"}),
        patch("app.chains.name_session.generate", AsyncMock(side_effect=RuntimeError("rate limited"))),
        patch("app.chains.name_session.update_session") as update,
    ):
        assert await name_session_from_insights("job-1", INSIGHTS, ["battlecard"]) is None

    update.assert_not_called()

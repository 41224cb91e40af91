"""Tests for running workspace actions as tracked jobs."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from app.core.schemas_workspace import ActionName, ActionResult
from app.db.action_jobs import create_action_job, get_action_job
from app.services import action_runner

SESSION_ID = "11111111-1111-1111-1111-111111111111"


@pytest.mark.asyncio
async def test_started_action_completes_job(fake_supabase):
    result = ActionResult(version={"id": "v2", "version_number": 2})

    with patch("app.services.action_runner.run_action", AsyncMock(return_value=result)):
        job_id = action_runner.start_action(ActionName.DESLOP, SESSION_ID, "battlecard")
        await asyncio.gather(*list(action_runner._running))

    job = get_action_job(job_id)
    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["result"]["version"]["id"] == "v2"


@pytest.mark.asyncio
async def test_action_error_fails_job(fake_supabase):
    job_id = create_action_job(SESSION_ID, "battlecard", "deslop")

    with patch("app.services.action_runner.run_action", AsyncMock(side_effect=RuntimeError("LLM down"))):
        await action_runner._execute(job_id, ActionName.DESLOP, SESSION_ID, "battlecard", None)

    job = get_action_job(job_id)
    assert job["status"] == "failed"
    assert job["error_message"] == "LLM down"


@pytest.mark.asyncio
async def test_unsaved_result_fails_job_instead_of_leaving_it_running(fake_supabase):
    job_id = create_action_job(SESSION_ID, "battlecard", "deslop")

    with (
        patch("app.services.action_runner.run_action", AsyncMock(return_value=ActionResult())),
        patch("app.services.action_runner.complete_action_job", side_effect=RuntimeError("connection reset")),
    ):
        await action_runner._execute(job_id, ActionName.DESLOP, SESSION_ID, "battlecard", None)

    job = get_action_job(job_id)
    assert job["status"] == "failed"
    assert "connection reset" in job["error_message"]


@pytest.mark.asyncio
async def test_unrecordable_job_does_not_raise(fake_supabase):
    job_id = create_action_job(SESSION_ID, "battlecard", "deslop")

    with (
        patch("app.services.action_runner.run_action", AsyncMock(return_value=ActionResult())),
        patch("app.services.action_runner.complete_action_job", side_effect=RuntimeError("connection reset")),
        patch("app.services.action_runner.fail_action_job", side_effect=RuntimeError("still down")) as fail,
    ):
        await action_runner._execute(job_id, ActionName.DESLOP, SESSION_ID, "battlecard", None)

    fail.assert_called_once()
    assert get_action_job(job_id)["status"] == "running"

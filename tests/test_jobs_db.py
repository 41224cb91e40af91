"""Tests for the generation job lifecycle against the in-memory Supabase fake."""

import uuid

import pytest

from app.core.errors import InvalidJobTransition, NotFoundError
from app.core.schemas_generation import JobInputs
from app.db.jobs import (
    complete_job,
    create_job,
    emit_pipeline_step,
    fail_job,
    get_job,
    start_job,
    update_job_progress,
)


def _inputs() -> JobInputs:
    return JobInputs(
        product_docs="Docs",
        voice_profile_ids=["v1"],
        asset_types=["battlecard"],
        pipeline="standard",
    )


def test_create_job_stores_camel_case_inputs(fake_supabase):
    job_id = create_job(_inputs())

    job = get_job(job_id)
    assert isinstance(job_id, uuid.UUID)
    assert job["status"] == "pending"
    assert job["progress"] == 0
    assert job["product_context"]["productDocs"] == "Docs"
    assert job["product_context"]["voiceProfileIds"] == ["v1"]
    assert JobInputs.model_validate(job["product_context"]).asset_types == ["battlecard"]


def test_full_lifecycle(fake_supabase):
    job_id = create_job(_inputs())

    start_job(job_id)
    update_job_progress(job_id, 40, "Generating")
    assert get_job(job_id)["progress"] == 40

    complete_job(job_id, {"_researchAvailable": True})
    job = get_job(job_id)
    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["product_context"]["_researchAvailable"] is True
    assert job["product_context"]["productDocs"] == "Docs"


def test_completed_job_cannot_fail(fake_supabase):
    job_id = create_job(_inputs())
    start_job(job_id)
    complete_job(job_id)

    with pytest.raises(InvalidJobTransition):
        fail_job(job_id, "late failure")
    assert get_job(job_id)["status"] == "completed"


def test_failed_job_keeps_message_and_stack(fake_supabase):
    job_id = create_job(_inputs())
    start_job(job_id)
    fail_job(job_id, "No valid voice profiles selected", "Traceback ...")

    job = get_job(job_id)
    assert job["status"] == "failed"
    assert job["error_message"] == "No valid voice profiles selected"
    assert job["error_stack"] == "Traceback ..."

    with pytest.raises(InvalidJobTransition):
        start_job(job_id)


def test_missing_job_is_not_found(fake_supabase):
    with pytest.raises(NotFoundError):
        start_job(uuid.uuid4())


def test_progress_update_rejected_after_completion(fake_supabase):
    job_id = create_job(_inputs())
    start_job(job_id)
    complete_job(job_id)

    with pytest.raises(InvalidJobTransition):
        update_job_progress(job_id, 50, "stale")
    assert get_job(job_id)["progress"] == 100


def test_pipeline_steps_append_in_order(fake_supabase):
    job_id = create_job(_inputs())

    emit_pipeline_step(job_id, "extract-insights", "running")
    emit_pipeline_step(job_id, "extract-insights", "completed", {"ok": True})

    steps = get_job(job_id)["pipeline_steps"]
    assert [(s["step"], s["status"]) for s in steps] == [
        ("extract-insights", "running"),
        ("extract-insights", "completed"),
    ]
    assert steps[1]["detail"] == {"ok": True}


def test_pipeline_step_never_raises(fake_supabase):
    emit_pipeline_step(uuid.uuid4(), "orphan")

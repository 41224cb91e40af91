"""Tests for the generation API endpoints."""

import uuid
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.core.schemas_generation import JobInputs, VoiceProfile
from app.core.schemas_scoring import ScoreResults
from app.db.jobs import complete_job, create_job, start_job
from app.db.messaging_assets import store_variant
from app.main import app

client = TestClient(app)


def _body(**overrides) -> dict:
    body = {
        "product_docs": "Acme CDC streams every Postgres change to Snowflake.",
        "voice_profile_ids": ["v1"],
        "asset_types": ["battlecard", "one_pager"],
        "pipeline": "standard",
    }
    body.update(overrides)
    return body


def test_start_generation_returns_202_and_queues_job(fake_supabase):
    runner = AsyncMock(return_value=True)

    with patch("app.api.generate.run_generation_job", runner):
        response = client.post("/v1/generate", json=_body())

    assert response.status_code == 202
    job_id = response.json()["job_id"]
    runner.assert_awaited_once()
    assert str(runner.await_args.args[0]) == job_id

    [job] = fake_supabase.rows("jobs")
    assert job["status"] == "pending"
    assert job["product_context"]["assetTypes"] == ["battlecard", "one_pager"]


def test_unknown_pipeline_is_rejected_before_job_creation(fake_supabase):
    response = client.post("/v1/generate", json=_body(pipeline="freestyle"))

    assert response.status_code == 422
    assert fake_supabase.rows("jobs") == []


def test_unknown_asset_type_is_rejected(fake_supabase):
    response = client.post("/v1/generate", json=_body(asset_types=["billboard"]))
    assert response.status_code == 422


def test_generation_requires_product_docs(fake_supabase):
    response = client.post("/v1/generate", json=_body(product_docs="   "))
    assert response.status_code == 422


def test_straight_through_requires_existing_messaging(fake_supabase):
    response = client.post("/v1/generate", json=_body(pipeline="straight-through", product_docs=None))
    assert response.status_code == 422

    with patch("app.api.generate.run_generation_job", AsyncMock(return_value=True)):
        response = client.post(
            "/v1/generate",
            json=_body(pipeline="straight-through", product_docs=None, existing_messaging="Our copy."),
        )
    assert response.status_code == 202


def test_status_of_missing_job_is_404(fake_supabase):
    response = client.get(f"/v1/generate/{uuid.uuid4()}")
    assert response.status_code == 404


def test_running_job_has_no_results(fake_supabase):
    job_id = create_job(JobInputs(product_docs="Docs", voice_profile_ids=["v1"], asset_types=["battlecard"]))
    start_job(job_id)

    response = client.get(f"/v1/generate/{job_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "running"
    assert data["results"] is None


def test_completed_job_returns_results_grouped_by_asset(fake_supabase):
    job_id = create_job(JobInputs(product_docs="Docs", voice_profile_ids=["v1"], asset_types=["battlecard"]))
    start_job(job_id)
    voice = VoiceProfile(id="v1", name="Practitioner", slug="practitioner")
    store_variant(job_id, "battlecard", "Final copy.", voice, ScoreResults(slop_score=1.0), True)
    complete_job(job_id)

    response = client.get(f"/v1/generate/{job_id}")

    data = response.json()
    assert data["status"] == "completed"
    assert data["progress"] == 100
    [asset] = data["results"]
    assert asset["asset_type"] == "battlecard"
    [variant] = asset["variants"]
    assert variant["content"] == "Final copy."
    assert variant["voice_name"] == "Practitioner"
    assert variant["scores"]["slop_score"] == 1.0
    assert variant["passes_gates"] is True

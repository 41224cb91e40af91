"""Tests for version lineage against the in-memory Supabase fake."""

from unittest.mock import patch

import pytest
from postgrest.exceptions import APIError

from app.core.errors import NotFoundError, VersionConflictError
from app.core.schemas_scoring import ScoreResults, ScoringThresholds
from app.db import session_versions
from app.db.session_versions import (
    activate_version,
    create_version_and_activate,
    get_active_version,
    list_versions,
)

SESSION_ID = "11111111-1111-1111-1111-111111111111"

PASSING = ScoreResults(
    slop_score=2.0,
    vendor_speak_score=2.0,
    authenticity_score=8.0,
    specificity_score=8.0,
    persona_avg_score=8.0,
)


def _active(rows):
    return [r for r in rows if r["is_active"]]


@pytest.mark.asyncio
async def test_versions_number_sequentially_with_one_active(fake_supabase):
    for i in range(4):
        await create_version_and_activate(SESSION_ID, "battlecard", f"content {i}", "edit")

    versions = list_versions(SESSION_ID, "battlecard")
    assert sorted(v["version_number"] for v in versions) == [1, 2, 3, 4]
    assert len(_active(versions)) == 1
    assert get_active_version(SESSION_ID, "battlecard")["version_number"] == 4


@pytest.mark.asyncio
async def test_asset_types_have_independent_lineage(fake_supabase):
    await create_version_and_activate(SESSION_ID, "battlecard", "a", "generation")
    await create_version_and_activate(SESSION_ID, "narrative", "b", "generation")
    await create_version_and_activate(SESSION_ID, "battlecard", "c", "deslop")

    assert [v["version_number"] for v in list_versions(SESSION_ID, "narrative")] == [1]
    assert get_active_version(SESSION_ID, "narrative")["content"] == "b"
    assert get_active_version(SESSION_ID, "battlecard")["content"] == "c"


@pytest.mark.asyncio
async def test_passes_gates_requires_scores_and_thresholds(fake_supabase):
    without_thresholds = await create_version_and_activate(
        SESSION_ID, "battlecard", "x", "edit", scores=PASSING
    )
    with_both = await create_version_and_activate(
        SESSION_ID, "battlecard", "y", "edit", scores=PASSING, thresholds=ScoringThresholds()
    )
    unscored = await create_version_and_activate(SESSION_ID, "battlecard", "z", "edit")

    assert without_thresholds["passes_gates"] is False
    assert with_both["passes_gates"] is True
    assert unscored["passes_gates"] is False
    assert unscored["slop_score"] is None


@pytest.mark.asyncio
async def test_active_version_falls_back_to_highest_number(fake_supabase):
    await create_version_and_activate(SESSION_ID, "battlecard", "one", "edit")
    await create_version_and_activate(SESSION_ID, "battlecard", "two", "edit")
    for row in fake_supabase.rows("session_versions"):
        row["is_active"] = False

    assert get_active_version(SESSION_ID, "battlecard")["content"] == "two"


@pytest.mark.asyncio
async def test_no_versions_returns_none(fake_supabase):
    assert get_active_version(SESSION_ID, "battlecard") is None


@pytest.mark.asyncio
async def test_activate_version_reflags_without_creating(fake_supabase):
    first = await create_version_and_activate(SESSION_ID, "battlecard", "one", "edit")
    await create_version_and_activate(SESSION_ID, "battlecard", "two", "edit")

    await activate_version(SESSION_ID, first["id"])

    versions = list_versions(SESSION_ID, "battlecard")
    assert len(versions) == 2
    assert [v["content"] for v in _active(versions)] == ["one"]


@pytest.mark.asyncio
async def test_activate_version_from_other_session_is_not_found(fake_supabase):
    version = await create_version_and_activate(SESSION_ID, "battlecard", "one", "edit")

    with pytest.raises(NotFoundError):
        await activate_version("22222222-2222-2222-2222-222222222222", version["id"])


@pytest.mark.asyncio
async def test_concurrent_writer_collision_is_retried(fake_supabase):
    """A duplicate version number from another worker is retried with a fresh read."""
    real_write = session_versions._write_version
    calls = {"n": 0}

    def racing_write(session_id, asset_type, *args):
        calls["n"] += 1
        if calls["n"] == 1:
            # Another process slips in version 1 between our read and insert
            fake_supabase.seed(
                "session_versions",
                {
                    "session_id": session_id,
                    "asset_type": asset_type,
                    "version_number": 1,
                    "content": "from another worker",
                    "is_active": True,
                },
            )
            fake_supabase.check_unique(
                "session_versions",
                {"session_id": session_id, "asset_type": asset_type, "version_number": 1},
            )
        return real_write(session_id, asset_type, *args)

    with patch("app.db.session_versions._write_version", side_effect=racing_write):
        version = await create_version_and_activate(SESSION_ID, "battlecard", "ours", "edit")

    assert version["version_number"] == 2
    assert calls["n"] == 2
    assert len(_active(list_versions(SESSION_ID, "battlecard"))) == 1


@pytest.mark.asyncio
async def test_persistent_collisions_raise_version_conflict(fake_supabase):
    conflict = APIError({"code": "23505", "message": "duplicate key", "details": None, "hint": None})

    with patch("app.db.session_versions._write_version", side_effect=conflict):
        with pytest.raises(VersionConflictError):
            await create_version_and_activate(SESSION_ID, "battlecard", "ours", "edit")


@pytest.mark.asyncio
async def test_other_database_errors_propagate(fake_supabase):
    error = APIError({"code": "42P01", "message": "relation does not exist", "details": None, "hint": None})

    with patch("app.db.session_versions._write_version", side_effect=error):
        with pytest.raises(APIError):
            await create_version_and_activate(SESSION_ID, "battlecard", "ours", "edit")

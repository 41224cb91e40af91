"""Session version lineage: append-only versions per (session, asset type).

create_version_and_activate is the only code path that adds versions. Within a
process, writers for the same (session, asset type) are serialized by an
asyncio lock. Across processes, the unique index on
(session_id, asset_type, version_number) rejects a second writer that computed
the same number, and the write is retried with a fresh read.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError

from app.core.config import get_settings
from app.core.errors import NotFoundError, VersionConflictError
from app.core.logging import get_logger
from app.core.quality_gates import check_quality_gates
from app.core.schemas_scoring import ScoreResults, ScoringThresholds
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

_UNIQUE_VIOLATION = "23505"

_version_locks: defaultdict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def list_versions(session_id: UUID | str, asset_type: str) -> list[dict[str, Any]]:
    """All versions for the pair, newest first."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("session_versions")
            .select("*")
            .eq("session_id", str(session_id))
            .eq("asset_type", asset_type)
            .order("version_number", desc=True)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list versions: {e}", extra={"session_id": str(session_id)})
        raise


def list_session_versions(session_id: UUID | str) -> list[dict[str, Any]]:
    """Every version in a session across asset types, newest first."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("session_versions")
            .select("*")
            .eq("session_id", str(session_id))
            .order("version_number", desc=True)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list session versions: {e}", extra={"session_id": str(session_id)})
        raise


def get_version(version_id: UUID | str) -> dict[str, Any] | None:
    supabase = get_supabase()

    try:
        response = supabase.table("session_versions").select("*").eq("id", str(version_id)).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get version {version_id}: {e}")
        raise


def get_active_version(session_id: UUID | str, asset_type: str) -> dict[str, Any] | None:
    """The active version, or the highest-numbered one if none is flagged."""
    versions = list_versions(session_id, asset_type)
    if not versions:
        return None
    for version in versions:
        if version.get("is_active"):
            return version

    logger.warning(
        f"No active version flagged for {asset_type}; using latest",
        extra={"session_id": str(session_id), "asset_type": asset_type},
    )
    return versions[0]


def _write_version(
    session_id: str,
    asset_type: str,
    content: str,
    source: str,
    source_detail: dict[str, Any],
    scores: ScoreResults | None,
    passes_gates: bool,
) -> dict[str, Any]:
    supabase = get_supabase()

    latest = (
        supabase.table("session_versions")
        .select("version_number")
        .eq("session_id", session_id)
        .eq("asset_type", asset_type)
        .order("version_number", desc=True)
        .limit(1)
        .execute()
    ).data
    next_number = (latest[0]["version_number"] if latest else 0) + 1

    supabase.table("session_versions").update({"is_active": False}).eq(
        "session_id", session_id
    ).eq("asset_type", asset_type).eq("is_active", True).execute()

    score_columns: dict[str, Any] = (
        scores.as_columns()
        if scores
        else {
            "slop_score": None,
            "vendor_speak_score": None,
            "authenticity_score": None,
            "specificity_score": None,
            "persona_avg_score": None,
        }
    )

    response = (
        supabase.table("session_versions")
        .insert(
            {
                "session_id": session_id,
                "asset_type": asset_type,
                "version_number": next_number,
                "content": content,
                "source": source,
                "source_detail": source_detail,
                **score_columns,
                "passes_gates": passes_gates,
                "is_active": True,
                "created_at": _utc_now_iso(),
            }
        )
        .execute()
    )
    if not response.data:
        raise ValueError("No data returned from session_versions insert")
    return response.data[0]


async def create_version_and_activate(
    session_id: UUID | str,
    asset_type: str,
    content: str,
    source: str,
    source_detail: dict[str, Any] | None = None,
    scores: ScoreResults | None = None,
    thresholds: ScoringThresholds | None = None,
) -> dict[str, Any]:
    """
    Append a version and make it the only active one for (session, asset_type).

    passes_gates is computed only when both scores and thresholds are given;
    otherwise it is False.

    Returns:
        The inserted version row

    Raises:
        VersionConflictError: If concurrent writers kept taking the next number
    """
    sid = str(session_id)
    passes_gates = bool(scores and thresholds and check_quality_gates(scores, thresholds))
    attempts = get_settings().VERSION_WRITE_RETRIES

    async with _version_locks[(sid, asset_type)]:
        for attempt in range(1, attempts + 1):
            try:
                version = _write_version(
                    sid, asset_type, content, source, source_detail or {}, scores, passes_gates
                )
                logger.info(
                    f"Created version {version['version_number']} ({source}) for {asset_type}",
                    extra={
                        "session_id": sid,
                        "asset_type": asset_type,
                        "passes_gates": passes_gates,
                    },
                )
                return version
            except APIError as e:
                if e.code != _UNIQUE_VIOLATION:
                    logger.error(f"Failed to create version: {e}", extra={"session_id": sid})
                    raise
                logger.warning(
                    f"Version number taken by a concurrent writer (attempt {attempt}/{attempts})",
                    extra={"session_id": sid, "asset_type": asset_type},
                )

    raise VersionConflictError(
        f"Could not allocate a version number for {sid}/{asset_type} after {attempts} attempts"
    )


async def activate_version(session_id: UUID | str, version_id: UUID | str) -> dict[str, Any]:
    """
    Re-flag an existing version as the active one. Creates no new version.

    Raises:
        NotFoundError: If the version does not belong to the session
    """
    supabase = get_supabase()
    version = get_version(version_id)
    if not version or str(version["session_id"]) != str(session_id):
        raise NotFoundError(f"Version {version_id} not found in session {session_id}")

    try:
        async with _version_locks[(str(session_id), version["asset_type"])]:
            supabase.table("session_versions").update({"is_active": False}).eq(
                "session_id", str(session_id)
            ).eq("asset_type", version["asset_type"]).eq("is_active", True).execute()

            response = (
                supabase.table("session_versions")
                .update({"is_active": True})
                .eq("id", str(version_id))
                .execute()
            )
        logger.info(
            f"Activated version {version['version_number']} for {version['asset_type']}",
            extra={"session_id": str(session_id)},
        )
        return response.data[0] if response.data else {**version, "is_active": True}

    except Exception as e:
        logger.error(f"Failed to activate version {version_id}: {e}")
        raise

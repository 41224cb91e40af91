"""Workspace session database operations."""

from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def create_session(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a session row.

    Args:
        fields: Column values (name, pain_point_id, voice_profile_id, asset_types,
            pipeline, product_context, status, metadata)

    Returns:
        Inserted session row
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("sessions")
            .insert({"is_archived": False, "status": "pending", **fields})
            .execute()
        )
        if not response.data:
            raise ValueError("No data returned from create_session")

        session = response.data[0]
        logger.info(f"Created session {session['id']}", extra={"session_id": session["id"]})
        return session

    except Exception as e:
        logger.error(f"Failed to create session: {e}")
        raise


def get_session(session_id: UUID | str) -> dict[str, Any] | None:
    supabase = get_supabase()

    try:
        response = supabase.table("sessions").select("*").eq("id", str(session_id)).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get session {session_id}: {e}")
        raise


def update_session(session_id: UUID | str, updates: dict[str, Any]) -> dict[str, Any] | None:
    """Full-row style update keyed by id. Returns the updated row."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("sessions")
            .update({**updates, "updated_at": _utc_now_iso()})
            .eq("id", str(session_id))
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to update session {session_id}: {e}", extra={"session_id": str(session_id)})
        raise


def list_sessions(include_archived: bool = False, limit: int = 50) -> list[dict[str, Any]]:
    """Sessions ordered by most recently created."""
    supabase = get_supabase()

    try:
        query = supabase.table("sessions").select("*")
        if not include_archived:
            query = query.eq("is_archived", False)
        response = query.order("created_at", desc=True).limit(limit).execute()
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list sessions: {e}")
        raise


def get_session_by_job(job_id: UUID | str) -> dict[str, Any] | None:
    """The session a generation job populates, if any."""
    supabase = get_supabase()

    try:
        response = supabase.table("sessions").select("*").eq("job_id", str(job_id)).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get session for job {job_id}: {e}", extra={"job_id": str(job_id)})
        raise

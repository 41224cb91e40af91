"""Workspace chat message database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def insert_message(
    session_id: UUID | str,
    role: str,
    content: str,
    asset_type: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Persist one chat message.

    Returns:
        The inserted message row
    """
    supabase = get_supabase()

    try:
        row = {
            "session_id": str(session_id),
            "role": role,
            "content": content,
            "metadata": metadata or {},
        }
        if asset_type:
            row["asset_type"] = asset_type
        response = supabase.table("session_messages").insert(row).execute()
        if not response.data:
            raise ValueError("No data returned from session_messages insert")
        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to save {role} message: {e}", extra={"session_id": str(session_id)})
        raise


def list_messages(session_id: UUID | str) -> list[dict[str, Any]]:
    """Chat history for a session, oldest first."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("session_messages")
            .select("*")
            .eq("session_id", str(session_id))
            .order("created_at")
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list messages: {e}", extra={"session_id": str(session_id)})
        raise


def get_message(message_id: UUID | str) -> dict[str, Any] | None:
    supabase = get_supabase()

    try:
        response = supabase.table("session_messages").select("*").eq("id", str(message_id)).limit(1).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get message {message_id}: {e}")
        raise


def mark_version_created(message_id: UUID | str, version_id: UUID | str) -> None:
    """Link an accepted assistant message to the version it produced."""
    supabase = get_supabase()

    try:
        supabase.table("session_messages").update({"version_created": str(version_id)}).eq(
            "id", str(message_id)
        ).execute()

    except Exception as e:
        logger.error(f"Failed to link message {message_id} to version: {e}")
        raise

"""Persona critic configuration database operations."""

from typing import Any

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_active_persona_critics() -> list[dict[str, Any]]:
    """Active critics, oldest first. Empty list means the default panel applies."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("persona_critics")
            .select("*")
            .eq("is_active", True)
            .order("created_at")
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(f"Failed to list persona critics: {e}")
        raise

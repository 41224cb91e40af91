"""Discovered pain point database operations."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_pain_point(pain_point_id: UUID | str) -> dict[str, Any] | None:
    supabase = get_supabase()

    try:
        response = (
            supabase.table("discovered_pain_points").select("*").eq("id", str(pain_point_id)).execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get pain point {pain_point_id}: {e}")
        raise


def create_manual_pain_point(title: str, content: str) -> dict[str, Any]:
    """Store a user-entered pain point so sessions can reference it like a discovered one."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("discovered_pain_points")
            .insert(
                {
                    "title": title,
                    "content": content,
                    "source_type": "manual",
                    "practitioner_quotes": [],
                }
            )
            .execute()
        )
        if not response.data:
            raise ValueError("No data returned from create_manual_pain_point")
        return response.data[0]

    except Exception as e:
        logger.error(f"Failed to create manual pain point: {e}")
        raise


def format_pain_point_context(pain_point: dict[str, Any]) -> str:
    """Render a pain point as a prompt section."""
    lines = [f"## Pain Point: {pain_point.get('title', '')}"]
    if pain_point.get("content"):
        lines.append(pain_point["content"])
    quotes = pain_point.get("practitioner_quotes") or []
    if quotes:
        lines.append("\nPractitioner quotes:")
        lines.extend(f'- "{q}"' for q in quotes)
    return "\n".join(lines)

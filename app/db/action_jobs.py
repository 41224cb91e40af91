"""Workspace action job database operations."""

from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def create_action_job(session_id: UUID | str, asset_type: str, action_name: str) -> str:
    """Insert a running action job and return its id."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("action_jobs")
            .insert(
                {
                    "session_id": str(session_id),
                    "asset_type": asset_type,
                    "action_name": action_name,
                    "status": "running",
                    "current_step": "Starting",
                    "progress": 0,
                }
            )
            .execute()
        )
        if not response.data:
            raise ValueError("No data returned from create_action_job")

        job_id = response.data[0]["id"]
        logger.info(
            f"Created action job {job_id} ({action_name})",
            extra={"session_id": str(session_id), "asset_type": asset_type},
        )
        return job_id

    except Exception as e:
        logger.error(f"Failed to create action job: {e}", extra={"session_id": str(session_id)})
        raise


def update_action_job_progress(job_id: str, progress: int, current_step: str) -> None:
    supabase = get_supabase()

    try:
        supabase.table("action_jobs").update(
            {"progress": progress, "current_step": current_step}
        ).eq("id", job_id).eq("status", "running").execute()

    except Exception as e:
        logger.warning(f"Failed to update action job progress: {e}", extra={"action_job_id": job_id})


def complete_action_job(job_id: str, result: dict[str, Any]) -> None:
    supabase = get_supabase()

    try:
        supabase.table("action_jobs").update(
            {
                "status": "completed",
                "progress": 100,
                "current_step": "Complete",
                "result": result,
                "completed_at": _utc_now_iso(),
            }
        ).eq("id", job_id).execute()
        logger.info(f"Completed action job {job_id}", extra={"action_job_id": job_id})

    except Exception as e:
        logger.error(f"Failed to complete action job: {e}", extra={"action_job_id": job_id})
        raise


def fail_action_job(job_id: str, error_message: str) -> None:
    supabase = get_supabase()

    try:
        supabase.table("action_jobs").update(
            {
                "status": "failed",
                "error_message": error_message,
                "completed_at": _utc_now_iso(),
            }
        ).eq("id", job_id).execute()
        logger.info(f"Failed action job {job_id}: {error_message}", extra={"action_job_id": job_id})

    except Exception as e:
        logger.error(f"Failed to update action job as failed: {e}", extra={"action_job_id": job_id})
        raise


def get_action_job(job_id: UUID | str) -> dict[str, Any] | None:
    supabase = get_supabase()

    try:
        response = supabase.table("action_jobs").select("*").eq("id", str(job_id)).execute()
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(f"Failed to get action job {job_id}: {e}")
        raise

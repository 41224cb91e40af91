"""Generation job lifecycle database operations.

Jobs move pending -> running -> completed | failed. Every mutating update is
conditional on the row still being non-terminal, so a job that has completed
or failed can never be moved again.
"""

from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from app.core.errors import InvalidJobTransition, NotFoundError
from app.core.logging import get_logger
from app.core.schemas_generation import JobInputs, JobStatus
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

_ACTIVE_STATUSES = [JobStatus.PENDING.value, JobStatus.RUNNING.value]


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def _guarded_update(job_id: UUID | str, payload: dict[str, Any], target_status: str) -> dict[str, Any]:
    """Apply an update only while the job is pending/running."""
    supabase = get_supabase()
    response = (
        supabase.table("jobs")
        .update(payload)
        .eq("id", str(job_id))
        .in_("status", _ACTIVE_STATUSES)
        .execute()
    )
    if response.data:
        return response.data[0]

    if get_job(job_id) is None:
        raise NotFoundError(f"Job {job_id} not found")
    raise InvalidJobTransition(str(job_id), target_status)


def create_job(inputs: JobInputs) -> UUID:
    """
    Create a pending generation job.

    Args:
        inputs: Serialized generation parameters

    Returns:
        Job UUID

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("jobs")
            .insert(
                {
                    "status": JobStatus.PENDING.value,
                    "current_step": "Queued",
                    "progress": 0,
                    "product_context": inputs.to_context(),
                    "pipeline_steps": [],
                }
            )
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from create_job")

        job_id = UUID(response.data[0]["id"])
        logger.info(
            f"Created {inputs.pipeline} job {job_id}",
            extra={"job_id": str(job_id), "pipeline": inputs.pipeline},
        )
        return job_id

    except Exception as e:
        logger.error(f"Failed to create job: {e}")
        raise


def start_job(job_id: UUID | str) -> None:
    """Mark a job as running."""
    try:
        _guarded_update(
            job_id,
            {
                "status": JobStatus.RUNNING.value,
                "current_step": "Starting",
                "started_at": _utc_now_iso(),
            },
            JobStatus.RUNNING.value,
        )
        logger.info(f"Started job {job_id}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to start job: {e}", extra={"job_id": str(job_id)})
        raise


def update_job_progress(job_id: UUID | str, progress: int, current_step: str) -> None:
    """
    Record progress on a running job.

    Args:
        job_id: Job UUID
        progress: 0-100
        current_step: Human-readable step label
    """
    progress = max(0, min(100, int(progress)))
    try:
        _guarded_update(
            job_id,
            {"status": JobStatus.RUNNING.value, "progress": progress, "current_step": current_step},
            JobStatus.RUNNING.value,
        )
        logger.debug(f"Job {job_id} at {progress}%: {current_step}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to update job progress: {e}", extra={"job_id": str(job_id)})
        raise


def emit_pipeline_step(
    job_id: UUID | str,
    step: str,
    status: str = "completed",
    detail: dict[str, Any] | None = None,
) -> None:
    """Append an entry to the job's step timeline. Never raises."""
    supabase = get_supabase()

    try:
        job = get_job(job_id)
        if not job:
            return
        steps = list(job.get("pipeline_steps") or [])
        steps.append({"step": step, "status": status, "at": _utc_now_iso(), "detail": detail or {}})
        supabase.table("jobs").update({"pipeline_steps": steps}).eq("id", str(job_id)).execute()

    except Exception as e:
        # The timeline is informational; the pipeline carries on without it
        logger.warning(f"Failed to record pipeline step '{step}': {e}", extra={"job_id": str(job_id)})


def complete_job(job_id: UUID | str, context_updates: dict[str, Any] | None = None) -> None:
    """
    Mark a job as completed, merging context_updates into product_context.

    Raises:
        InvalidJobTransition: If the job is already terminal
    """
    try:
        payload: dict[str, Any] = {
            "status": JobStatus.COMPLETED.value,
            "progress": 100,
            "current_step": "Complete",
            "completed_at": _utc_now_iso(),
        }
        if context_updates:
            job = get_job(job_id) or {}
            payload["product_context"] = {**(job.get("product_context") or {}), **context_updates}

        _guarded_update(job_id, payload, JobStatus.COMPLETED.value)
        logger.info(f"Completed job {job_id}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to complete job: {e}", extra={"job_id": str(job_id)})
        raise


def fail_job(job_id: UUID | str, error_message: str, error_stack: str | None = None) -> None:
    """
    Mark a job as failed with error message.

    Raises:
        InvalidJobTransition: If the job is already terminal
    """
    try:
        _guarded_update(
            job_id,
            {
                "status": JobStatus.FAILED.value,
                "error_message": error_message,
                "error_stack": error_stack,
                "completed_at": _utc_now_iso(),
            },
            JobStatus.FAILED.value,
        )
        logger.info(f"Failed job {job_id}: {error_message}", extra={"job_id": str(job_id)})

    except Exception as e:
        logger.error(f"Failed to update job as failed: {e}", extra={"job_id": str(job_id)})
        raise


def get_job(job_id: UUID | str) -> dict[str, Any] | None:
    """
    Get a job by ID.

    Returns:
        Job dict or None if not found
    """
    supabase = get_supabase()

    try:
        response = supabase.table("jobs").select("*").eq("id", str(job_id)).execute()

        if response.data:
            return response.data[0]

        logger.warning(f"Job {job_id} not found")
        return None

    except Exception as e:
        logger.error(f"Failed to get job {job_id}: {e}")
        raise

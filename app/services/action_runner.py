"""Runs workspace actions as tracked background jobs."""

import asyncio

from app.core.logging import get_logger
from app.core.schemas_workspace import ActionName
from app.db.action_jobs import complete_action_job, create_action_job, fail_action_job, update_action_job_progress
from app.services.workspace_actions import run_action

logger = get_logger(__name__)

# Strong references so scheduled actions are not garbage collected mid-flight
_running: set[asyncio.Task] = set()


async def _execute(
    action_job_id: str,
    action: ActionName,
    session_id: str,
    asset_type: str,
    voice_profile_id: str | None,
) -> None:
    update_action_job_progress(action_job_id, 10, f"Running {action.value}")
    try:
        result = await run_action(action, session_id, asset_type, voice_profile_id)
    except Exception as e:
        logger.exception(
            f"Action {action.value} failed for session {session_id}",
            extra={"session_id": session_id, "asset_type": asset_type, "action_job_id": action_job_id},
        )
        try:
            fail_action_job(action_job_id, str(e))
        except Exception as fail_error:
            logger.error(f"Failed to mark action job {action_job_id} as failed: {fail_error}")
        return

    try:
        complete_action_job(action_job_id, result.model_dump(mode="json"))
    except Exception as e:
        logger.exception(
            f"Failed to record result of action job {action_job_id}",
            extra={"session_id": session_id, "asset_type": asset_type, "action_job_id": action_job_id},
        )
        try:
            fail_action_job(action_job_id, f"Failed to save result: {e}")
        except Exception as fail_error:
            logger.error(f"Failed to mark action job {action_job_id} as failed: {fail_error}")
        return

    logger.info(
        f"Action {action.value} completed",
        extra={
            "session_id": session_id,
            "asset_type": asset_type,
            "action_job_id": action_job_id,
            "new_version": bool(result.version),
        },
    )


def start_action(
    action: ActionName,
    session_id: str,
    asset_type: str,
    voice_profile_id: str | None = None,
) -> str:
    """
    Create a running action job and schedule its body on the event loop.

    Must be called from inside a running loop (any FastAPI handler).

    Returns:
        Action job id to poll
    """
    action_job_id = create_action_job(session_id, asset_type, action.value)
    task = asyncio.create_task(_execute(action_job_id, action, session_id, asset_type, voice_profile_id))
    _running.add(task)
    task.add_done_callback(_running.discard)
    return action_job_id

"""API endpoints for workspace sessions, actions and version history."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.core.schemas_generation import AssetType
from app.core.schemas_workspace import (
    ActionJobResponse,
    ActionName,
    ActionRequest,
    ActionStatusResponse,
    CreateSessionRequest,
    EditVersionRequest,
    SessionResponse,
    UpdateSessionRequest,
)
from app.db.action_jobs import get_action_job
from app.db.session_versions import activate_version, get_active_version, list_versions
from app.db.sessions import get_session
from app.services.action_runner import start_action
from app.services.session_service import (
    create_session,
    get_session_status,
    get_session_with_results,
    list_workspace_sessions,
    run_session_generation,
    update_workspace_session,
)
from app.services.workspace_actions import create_edit_version

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Sessions
# =============================================================================


@router.post("/sessions", status_code=202, response_model=SessionResponse)
async def create_workspace_session(
    request: CreateSessionRequest, background_tasks: BackgroundTasks
) -> SessionResponse:
    """Create a session and start its generation job in the background."""
    try:
        session, job_id = create_session(request)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception("Failed to create session")
        raise HTTPException(status_code=500, detail="Failed to create session") from e

    background_tasks.add_task(run_session_generation, str(session["id"]), job_id)
    return SessionResponse(
        session_id=str(session["id"]),
        job_id=job_id,
        name=session["name"],
        status=session["status"],
    )


@router.get("/sessions")
async def list_workspace_sessions_endpoint(
    include_archived: bool = Query(False, description="Include archived sessions"),
    limit: int = Query(50, description="Maximum number of sessions to return", ge=1, le=200),
) -> dict:
    try:
        sessions = list_workspace_sessions(include_archived=include_archived, limit=limit)
        return {"sessions": sessions, "count": len(sessions)}

    except Exception as e:
        logger.exception("Failed to list sessions")
        raise HTTPException(status_code=500, detail="Failed to list sessions") from e


@router.get("/sessions/{session_id}")
async def get_workspace_session(session_id: UUID) -> dict:
    """Session with every asset's versions and the active one for each."""
    try:
        return get_session_with_results(session_id)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to get session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve session") from e


@router.get("/sessions/{session_id}/status")
async def get_workspace_session_status(session_id: UUID) -> dict:
    try:
        return get_session_status(session_id)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to get status for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve session status") from e


@router.patch("/sessions/{session_id}")
async def update_workspace_session_endpoint(session_id: UUID, request: UpdateSessionRequest) -> dict:
    """Rename or archive a session."""
    try:
        return update_workspace_session(session_id, request)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to update session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to update session") from e


# =============================================================================
# Actions
# =============================================================================


@router.post(
    "/sessions/{session_id}/actions/{action}",
    status_code=202,
    response_model=ActionJobResponse,
)
async def start_workspace_action(session_id: UUID, action: ActionName, request: ActionRequest) -> ActionJobResponse:
    """
    Queue a workspace action against the active version of one asset.

    Raises:
        HTTPException 400: change-voice without a voice_profile_id
        HTTPException 404: Session not found
        HTTPException 409: No version exists yet for the asset type
    """
    if action == ActionName.CHANGE_VOICE and not request.voice_profile_id:
        raise HTTPException(status_code=400, detail="change-voice requires voice_profile_id")

    try:
        if not get_session(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        if action != ActionName.REGENERATE and not get_active_version(session_id, request.asset_type.value):
            raise HTTPException(
                status_code=409,
                detail=f"No versions exist for {request.asset_type.value} in this session",
            )

        job_id = start_action(action, str(session_id), request.asset_type.value, request.voice_profile_id)
        return ActionJobResponse(job_id=job_id)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to start {action.value} for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to start action") from e


@router.get("/sessions/{session_id}/actions/{job_id}", response_model=ActionStatusResponse)
async def get_workspace_action_status(session_id: UUID, job_id: UUID) -> ActionStatusResponse:
    try:
        job = get_action_job(job_id)
        if not job or str(job["session_id"]) != str(session_id):
            raise HTTPException(status_code=404, detail="Action job not found")

        return ActionStatusResponse(
            job_id=str(job["id"]),
            action_name=job["action_name"],
            status=job["status"],
            current_step=job.get("current_step"),
            progress=job.get("progress") or 0,
            result=job.get("result"),
            error_message=job.get("error_message"),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get action job {job_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve action status") from e


# =============================================================================
# Versions
# =============================================================================


@router.get("/sessions/{session_id}/versions/{asset_type}")
async def list_asset_versions(session_id: UUID, asset_type: AssetType) -> dict:
    try:
        versions = list_versions(session_id, asset_type.value)
        return {"asset_type": asset_type.value, "versions": versions, "count": len(versions)}

    except Exception as e:
        logger.exception(f"Failed to list versions for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to list versions") from e


@router.post("/sessions/{session_id}/versions/{version_id}/activate")
async def activate_asset_version(session_id: UUID, version_id: UUID) -> dict:
    """Make an earlier version the active one without creating a new version."""
    try:
        return await activate_version(session_id, version_id)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to activate version {version_id}")
        raise HTTPException(status_code=500, detail="Failed to activate version") from e


@router.post("/sessions/{session_id}/versions/{asset_type}/edit", status_code=201)
async def edit_asset_version(session_id: UUID, asset_type: AssetType, request: EditVersionRequest) -> dict:
    """Save an inline edit as a new scored, active version."""
    try:
        return await create_edit_version(str(session_id), asset_type.value, request.content)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Failed to save edit for session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to save edit") from e

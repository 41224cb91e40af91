"""Workspace sessions: creation, generation hand-off and version seeding."""

from collections import defaultdict
from typing import Any
from uuid import UUID

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.core.quality_gates import total_quality_score
from app.core.schemas_generation import JobInputs, JobStatus
from app.core.schemas_scoring import ScoreResults
from app.core.schemas_workspace import CreateSessionRequest, SessionStatus, UpdateSessionRequest, VersionSource
from app.db.jobs import create_job, get_job
from app.db.messaging_assets import list_job_assets
from app.db.pain_points import create_manual_pain_point, format_pain_point_context, get_pain_point
from app.db.session_versions import create_version_and_activate, list_session_versions
from app.db.sessions import create_session as insert_session
from app.db.sessions import get_session, list_sessions, update_session
from app.db.voice_profiles import get_voice_profiles
from app.services.generation_orchestrator import run_generation_job

logger = get_logger(__name__)

PLACEHOLDER_NAME = "New Session"


def _resolve_pain_point(request: CreateSessionRequest) -> dict[str, Any] | None:
    if request.manual_pain_point:
        return create_manual_pain_point(request.manual_pain_point.title, request.manual_pain_point.content)
    if request.pain_point_id:
        pain_point = get_pain_point(request.pain_point_id)
        if not pain_point:
            raise NotFoundError(f"Pain point {request.pain_point_id} not found")
        return pain_point
    return None


def create_session(request: CreateSessionRequest) -> tuple[dict[str, Any], str]:
    """
    Create a session and its pending generation job.

    The pain point context becomes the job's focus prompt. The session is named
    once insights are extracted; until then it carries a placeholder.

    Returns:
        (session row, job id)
    """
    pain_point = _resolve_pain_point(request)
    pain_context = format_pain_point_context(pain_point) if pain_point else ""
    focus = "\n\n".join(p for p in (pain_context, request.additional_context) if p and p.strip()) or None

    session = insert_session(
        {
            "name": PLACEHOLDER_NAME,
            "pain_point_id": pain_point["id"] if pain_point else None,
            "voice_profile_id": request.voice_profile_ids[0],
            "asset_types": [a.value for a in request.asset_types],
            "pipeline": request.pipeline.value,
            "product_context": request.product_docs or "",
            "metadata": {
                "voiceProfileIds": request.voice_profile_ids,
                "existingMessaging": request.existing_messaging,
                "additionalContext": request.additional_context,
                "model": request.model,
            },
        }
    )
    session_id = str(session["id"])

    job_id = str(
        create_job(
            JobInputs(
                product_docs=request.product_docs or "",
                existing_messaging=request.existing_messaging,
                prompt=focus,
                voice_profile_ids=request.voice_profile_ids,
                asset_types=[a.value for a in request.asset_types],
                model=request.model,
                pipeline=request.pipeline.value,
                session_id=session_id,
            )
        )
    )
    session = update_session(session_id, {"job_id": job_id, "status": SessionStatus.GENERATING.value}) or session

    logger.info(
        f"Created session {session_id} with job {job_id}",
        extra={"session_id": session_id, "job_id": job_id, "pipeline": request.pipeline.value},
    )
    return session, job_id


async def create_initial_versions(session_id: UUID | str, job_id: UUID | str) -> int:
    """
    Seed version 1..N per asset type from a completed job's variants.

    Variants are inserted worst-first so the best-scoring one ends up active.

    Returns:
        Number of versions created
    """
    assets = list_job_assets(job_id)
    voice_ids = {v["voice_profile_id"] for a in assets for v in a["variants"] if v.get("voice_profile_id")}
    voices = {v.id: v for v in get_voice_profiles(list(voice_ids))} if voice_ids else {}

    by_type: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for asset in assets:
        by_type[asset["asset_type"]].append(asset)

    created = 0
    for asset_type, group in by_type.items():
        ranked = sorted(group, key=lambda a: total_quality_score(ScoreResults.from_row(a) or ScoreResults()))
        for asset in ranked:
            metadata = asset.get("metadata") or {}
            voice = voices.get(metadata.get("voiceId"))
            await create_version_and_activate(
                session_id,
                asset_type,
                asset["content"],
                VersionSource.GENERATION.value,
                {
                    "jobId": str(job_id),
                    "assetId": asset["id"],
                    "voiceId": metadata.get("voiceId"),
                    "voiceName": metadata.get("voiceName"),
                    "needsManualReview": metadata.get("needsManualReview", False),
                },
                ScoreResults.from_row(asset),
                voice.scoring_thresholds if voice else None,
            )
            created += 1

    logger.info(f"Seeded {created} versions from job {job_id}", extra={"session_id": str(session_id)})
    return created


async def run_session_generation(session_id: str, job_id: str) -> None:
    """Background task: run the job, then mirror its outcome onto the session."""
    completed = await run_generation_job(job_id)
    if not completed:
        update_session(session_id, {"status": SessionStatus.FAILED.value})
        return

    try:
        await create_initial_versions(session_id, job_id)
        update_session(session_id, {"status": SessionStatus.COMPLETED.value})
    except Exception:
        logger.exception(
            f"Failed to seed versions for session {session_id}",
            extra={"session_id": session_id, "job_id": job_id},
        )
        update_session(session_id, {"status": SessionStatus.FAILED.value})


def _require_session(session_id: UUID | str) -> dict[str, Any]:
    session = get_session(session_id)
    if not session:
        raise NotFoundError(f"Session {session_id} not found")
    return session


def get_session_status(session_id: UUID | str) -> dict[str, Any]:
    """Session status with the generation job's progress folded in."""
    session = _require_session(session_id)
    job = get_job(session["job_id"]) if session.get("job_id") else None

    status = session.get("status") or SessionStatus.PENDING.value
    if job and job.get("status") == JobStatus.FAILED.value and status != SessionStatus.FAILED.value:
        update_session(session_id, {"status": SessionStatus.FAILED.value})
        status = SessionStatus.FAILED.value

    return {
        "session_id": str(session["id"]),
        "name": session.get("name"),
        "status": status,
        "job_id": session.get("job_id"),
        "job_status": job.get("status") if job else None,
        "progress": (job or {}).get("progress", 0),
        "current_step": (job or {}).get("current_step"),
        "error_message": (job or {}).get("error_message"),
    }


def get_session_with_results(session_id: UUID | str) -> dict[str, Any]:
    """Session row plus every version grouped by asset type, with the active one singled out."""
    session = _require_session(session_id)

    grouped: dict[str, dict[str, Any]] = {}
    for version in list_session_versions(session_id):
        entry = grouped.setdefault(version["asset_type"], {"active": None, "versions": []})
        entry["versions"].append(version)
        if version.get("is_active"):
            entry["active"] = version
    for entry in grouped.values():
        if entry["active"] is None and entry["versions"]:
            entry["active"] = max(entry["versions"], key=lambda v: v["version_number"])

    return {**session, "assets": grouped}


def list_workspace_sessions(include_archived: bool = False, limit: int = 50) -> list[dict[str, Any]]:
    return list_sessions(include_archived=include_archived, limit=limit)


def update_workspace_session(session_id: UUID | str, request: UpdateSessionRequest) -> dict[str, Any]:
    """Rename or (un)archive a session."""
    _require_session(session_id)
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise ValueError("Nothing to update")
    return update_session(session_id, updates)

"""API endpoints for standalone generation jobs."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException

from app.core.logging import get_logger
from app.core.schemas_generation import (
    AssetResult,
    GenerateRequest,
    GenerateResponse,
    JobStatus,
    JobStatusResponse,
    VariantResult,
)
from app.db.jobs import create_job, get_job
from app.db.messaging_assets import list_job_assets
from app.services.generation_orchestrator import run_generation_job

logger = get_logger(__name__)

router = APIRouter()


def _build_results(job_id: UUID) -> list[AssetResult]:
    grouped: dict[str, AssetResult] = {}
    for asset in list_job_assets(job_id):
        result = grouped.setdefault(asset["asset_type"], AssetResult(asset_type=asset["asset_type"]))
        metadata = asset.get("metadata") or {}
        for variant in asset["variants"]:
            result.variants.append(
                VariantResult(
                    variant_id=str(variant["id"]),
                    voice_profile_id=variant.get("voice_profile_id"),
                    voice_name=metadata.get("voiceName"),
                    content=variant["content"],
                    scores={
                        key: variant.get(key)
                        for key in (
                            "slop_score",
                            "vendor_speak_score",
                            "authenticity_score",
                            "specificity_score",
                            "persona_avg_score",
                        )
                    },
                    passes_gates=bool(variant.get("passes_gates")),
                    is_selected=bool(variant.get("is_selected")),
                )
            )
    return list(grouped.values())


@router.post("/generate", status_code=202, response_model=GenerateResponse)
async def start_generation(request: GenerateRequest, background_tasks: BackgroundTasks) -> GenerateResponse:
    """
    Create a generation job and run its pipeline in the background.

    Unknown pipelines and missing source material are rejected with 422 by
    request validation before any job is created.
    """
    try:
        job_id = create_job(request.to_job_inputs())
    except Exception as e:
        logger.exception("Failed to create generation job")
        raise HTTPException(status_code=500, detail="Failed to create generation job") from e

    background_tasks.add_task(run_generation_job, job_id)
    logger.info(
        f"Queued {request.pipeline.value} generation job {job_id}",
        extra={"job_id": str(job_id), "pipeline": request.pipeline.value},
    )
    return GenerateResponse(job_id=str(job_id))


@router.get("/generate/{job_id}", response_model=JobStatusResponse)
async def get_generation_status(job_id: UUID) -> JobStatusResponse:
    """
    Job status and progress; results are attached once the job completes.

    Raises:
        HTTPException 404: If job not found
        HTTPException 500: If database error
    """
    try:
        job = get_job(job_id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        status = JobStatus(job["status"])
        return JobStatusResponse(
            job_id=str(job_id),
            status=status,
            current_step=job.get("current_step"),
            progress=job.get("progress") or 0,
            results=_build_results(job_id) if status == JobStatus.COMPLETED else None,
            error_message=job.get("error_message"),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get job {job_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve job status") from e

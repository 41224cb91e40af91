"""Run a generation job end to end: dispatch to its pipeline, record the outcome."""

import traceback
from collections.abc import Awaitable, Callable
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_generation import PipelineName
from app.db.jobs import fail_job, start_job
from app.services.pipeline_steps import PipelineRun, load_pipeline_run
from app.services.pipelines.adversarial import run_adversarial_pipeline
from app.services.pipelines.multi_perspective import run_multi_perspective_pipeline
from app.services.pipelines.outside_in import run_outside_in_pipeline
from app.services.pipelines.split_research import run_split_research_pipeline
from app.services.pipelines.standard import run_standard_pipeline
from app.services.pipelines.straight_through import run_straight_through_pipeline

logger = get_logger(__name__)

PipelineRunner = Callable[[PipelineRun], Awaitable[None]]

PIPELINE_RUNNERS: dict[PipelineName, PipelineRunner] = {
    PipelineName.STANDARD: run_standard_pipeline,
    PipelineName.SPLIT_RESEARCH: run_split_research_pipeline,
    PipelineName.OUTSIDE_IN: run_outside_in_pipeline,
    PipelineName.ADVERSARIAL: run_adversarial_pipeline,
    PipelineName.MULTI_PERSPECTIVE: run_multi_perspective_pipeline,
    PipelineName.STRAIGHT_THROUGH: run_straight_through_pipeline,
}


def resolve_pipeline(name: str | None) -> PipelineName:
    """Stored jobs with a missing or unknown pipeline run as standard."""
    try:
        return PipelineName(name or PipelineName.STANDARD.value)
    except ValueError:
        logger.warning(f"Unknown pipeline '{name}', falling back to standard")
        return PipelineName.STANDARD


async def run_generation_job(job_id: UUID | str) -> bool:
    """
    Execute a pending generation job. Intended to run as a background task.

    Any exception escaping the pipeline fails the job with its message and stack.

    Returns:
        True if the job completed, False if it failed
    """
    try:
        start_job(job_id)
        run = load_pipeline_run(job_id)
        pipeline = resolve_pipeline(run.inputs.pipeline)
        logger.info(
            f"Running {pipeline.value} pipeline: {len(run.inputs.asset_types)} asset types x "
            f"{len(run.voices)} voices",
            extra={"job_id": str(job_id), "pipeline": pipeline.value},
        )
        await PIPELINE_RUNNERS[pipeline](run)
        return True

    except Exception as e:
        logger.exception(f"Generation job {job_id} failed", extra={"job_id": str(job_id)})
        try:
            fail_job(job_id, str(e) or type(e).__name__, traceback.format_exc())
        except Exception as fail_error:
            logger.error(f"Could not record failure for job {job_id}: {fail_error}")
        return False

"""Worker endpoints called by Cloud Tasks and the scheduler."""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from examgen.dependencies import ServiceContainer, get_container, verify_internal_token
from examgen.errors import JobNotFound
from examgen.models.jobs import JobPayload

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_internal_token)])


class ReapRequest(BaseModel):
    staleMinutes: Optional[float] = Field(default=None, gt=0)


@router.post("/jobs/generate-questions")
async def generate_questions_job(
    payload: JobPayload,
    container: ServiceContainer = Depends(get_container),
):
    """
    Run a question generation job.
    Called by Cloud Tasks; safe to redeliver because only a PENDING job is run.
    """
    logger.info(f"Starting question generation job: {payload.jobId}")

    try:
        result = await container.pipeline.run(payload.jobId)
    except JobNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error in generation job {payload.jobId}: {e}")
        raise HTTPException(status_code=500, detail=f"Question generation failed: {str(e)}")

    logger.info(f"Finished question generation job {payload.jobId}: {result.status.value}")
    return {"status": "success", "jobId": payload.jobId, "result": result.model_dump(mode="json")}


@router.post("/jobs/reap-stale")
async def reap_stale_jobs(
    request: Optional[ReapRequest] = None,
    container: ServiceContainer = Depends(get_container),
):
    """Cancel jobs that have not progressed within the stale threshold."""
    threshold = None
    if request is not None and request.staleMinutes is not None:
        threshold = timedelta(minutes=request.staleMinutes)

    reaped = await container.reaper.reap(threshold)
    return {"reaped": reaped, "count": len(reaped)}

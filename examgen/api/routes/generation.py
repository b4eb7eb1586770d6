"""Generation job and material processing endpoints for the request layer."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from examgen.dependencies import ServiceContainer, get_container
from examgen.errors import (
    JobNotFound,
    MalformedDocument,
    MaterialNotFound,
    ProcessingFailed,
    StorageUnavailable,
)
from examgen.models.jobs import GenerationJobRequest, JobResult

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/generation-jobs", status_code=202)
async def submit_generation_job(
    request: GenerationJobRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Create a generation job and dispatch it (queued, or inline as a fallback)."""
    try:
        job, dispatch_mode = await container.job_service.submit(request)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)

    return {"jobId": job.id, "status": job.status.value, "dispatch": dispatch_mode}


@router.get("/generation-jobs/{job_id}", response_model=JobResult)
async def get_generation_job(
    job_id: str,
    container: ServiceContainer = Depends(get_container),
):
    job = await container.jobs.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=str(JobNotFound(job_id)))
    return JobResult.from_job(job)


@router.get("/generation-jobs/{job_id}/questions")
async def list_generated_questions(
    job_id: str,
    container: ServiceContainer = Depends(get_container),
):
    """Questions persisted by a completed job, in generation order."""
    job = await container.jobs.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=str(JobNotFound(job_id)))

    questions = await container.questions.list_for_job(job_id)
    return {
        "jobId": job_id,
        "status": job.status.value,
        "count": len(questions),
        "questions": [q.model_dump(mode="json") for q in questions],
    }


@router.post("/materials/{material_id}/process")
async def process_material(
    material_id: str,
    container: ServiceContainer = Depends(get_container),
):
    """Extract and segment a material. Repeat calls return the stored result."""
    try:
        material = await container.material_store.process_material(material_id)
    except MaterialNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=e.message)
    except (MalformedDocument, ProcessingFailed) as e:
        raise HTTPException(status_code=422, detail=e.message)

    return {
        "materialId": material.id,
        "isProcessed": material.is_processed,
        "sectionCount": len(material.sections or []),
        "sections": [
            {"id": s.id, "title": s.title, "level": s.level, "page": s.page}
            for s in material.sections or []
        ],
    }

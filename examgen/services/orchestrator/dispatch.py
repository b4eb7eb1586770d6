"""Job submission and scheduling."""
import logging
import uuid
from typing import Tuple

from examgen.db.base import JobRepository, MaterialRepository
from examgen.errors import DispatcherUnavailable, MaterialNotFound
from examgen.models.jobs import GenerationJob, GenerationJobRequest
from examgen.services.orchestrator.pipeline import GenerationPipeline
from examgen.services.task_queue import TaskDispatcher

logger = logging.getLogger(__name__)

DISPATCH_QUEUED = "queued"
DISPATCH_INLINE = "inline"


class GenerationJobService:
    """Creates jobs and hands them to the task queue, or runs them inline."""

    def __init__(
        self,
        jobs: JobRepository,
        materials: MaterialRepository,
        pipeline: GenerationPipeline,
        dispatcher: TaskDispatcher,
    ):
        self.jobs = jobs
        self.materials = materials
        self.pipeline = pipeline
        self.dispatcher = dispatcher

    async def submit(self, request: GenerationJobRequest) -> Tuple[GenerationJob, str]:
        """
        Create a PENDING job and dispatch it.

        Returns:
            Tuple of (job as stored after dispatch, dispatch mode)

        Raises:
            MaterialNotFound: If the referenced material does not exist
        """
        if await self.materials.get_material(request.materialId) is None:
            raise MaterialNotFound(f"Course material {request.materialId} not found")

        job = await self.jobs.create_job(
            GenerationJob(
                id=str(uuid.uuid4()),
                course_id=request.courseId,
                material_id=request.materialId,
                unit=request.unit,
                quotas=request.quotas,
                total_requested=request.quotas.total_requested,
                initiated_by=request.initiatedBy,
            )
        )
        logger.info(
            f"Created generation job {job.id} for material {request.materialId}, "
            f"unit {request.unit}, {job.total_requested} questions"
        )

        mode = await self.dispatch(job.id)
        return (await self.jobs.get_job(job.id)) or job, mode

    async def dispatch(self, job_id: str) -> str:
        """Enqueue the job, falling back to running it in the current request."""
        try:
            task_name = await self.dispatcher.enqueue(job_id)
        except DispatcherUnavailable as e:
            logger.warning(f"Dispatcher unavailable for job {job_id} ({e}), running inline")
            await self.pipeline.run(job_id)
            return DISPATCH_INLINE

        logger.info(f"Job {job_id} queued as {task_name}")
        return DISPATCH_QUEUED

"""The single generation pipeline shared by the queued and inline schedulers."""
import logging
import uuid

from examgen.db.base import JobRepository
from examgen.errors import JobNotFound, MaterialNotFound, PipelineError, StaleJob
from examgen.models.jobs import JobResult, JobStatus, ProcessingStage
from examgen.models.questions import Question
from examgen.services.material_store import MaterialStore
from examgen.services.orchestrator.tracker import JobTracker
from examgen.services.question_synthesizer import QuestionSynthesizer

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Question generation failed due to an internal error"


class GenerationPipeline:
    """Runs one generation job from PENDING to a terminal state."""

    def __init__(
        self,
        jobs: JobRepository,
        material_store: MaterialStore,
        synthesizer: QuestionSynthesizer,
    ):
        self.jobs = jobs
        self.material_store = material_store
        self.synthesizer = synthesizer

    async def _snapshot(self, job_id: str) -> JobResult:
        job = await self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return JobResult.from_job(job)

    async def run(self, job_id: str) -> JobResult:
        """
        Execute a job end to end.

        Jobs that are not PENDING (already claimed, finished or reaped) are returned
        unchanged. Stage errors end the job as FAILED; unexpected errors are recorded
        the same way and then re-raised.

        Raises:
            JobNotFound: Unknown job id
        """
        job = await self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        if job.status != JobStatus.PENDING:
            logger.info(f"Job {job_id} is {job.status.value}, nothing to run")
            return JobResult.from_job(job)

        tracker = JobTracker(self.jobs, job_id)
        try:
            if not job.material_id:
                raise MaterialNotFound("Generation job has no source material")
            material = await self.material_store.get_material(job.material_id)

            start = ProcessingStage.SYNTHESIZING if material.is_processed else ProcessingStage.EXTRACTING
            if not await tracker.claim(start):
                logger.info(f"Job {job_id} was claimed elsewhere")
                return await self._snapshot(job_id)

            if not material.is_processed:
                material = await self.material_store.process_material(material.id, on_stage=tracker.advance)
                await tracker.advance(ProcessingStage.SYNTHESIZING)

            course_context = None
            if material.title:
                course_context = f"{material.title} ({material.material_type.value})"

            result = await self.synthesizer.synthesize(
                material.sections or [],
                job.quotas,
                job.unit,
                course_context=course_context,
            )

            await tracker.advance(ProcessingStage.PERSISTING)
            questions = [
                Question(
                    id=str(uuid.uuid4()),
                    course_id=job.course_id,
                    unit=job.unit,
                    source_material_id=material.id,
                    generation_job_id=job_id,
                    **candidate.model_dump(),
                )
                for candidate in result.questions
            ]
            await tracker.complete(questions, result.warning)

        except PipelineError as e:
            failed_stage = tracker.stage.value if tracker.stage != ProcessingStage.PENDING else e.stage
            await tracker.fail(e.message, failed_stage)
        except StaleJob:
            logger.warning(f"Job {job_id} was cancelled while running at {tracker.stage.value}, stopping")
        except Exception:
            logger.exception(f"Unexpected error in job {job_id} at {tracker.stage.value}")
            await tracker.fail(UNEXPECTED_ERROR_MESSAGE, tracker.stage.value)
            raise

        return await self._snapshot(job_id)

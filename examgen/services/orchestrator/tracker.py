"""Forward-only stage and progress tracking for one job run."""
import logging
from typing import List, Optional

from examgen.db.base import JobRepository
from examgen.errors import StaleJob
from examgen.models.jobs import ProcessingStage
from examgen.models.questions import Question

logger = logging.getLogger(__name__)

STAGE_ORDER = [
    ProcessingStage.PENDING,
    ProcessingStage.EXTRACTING,
    ProcessingStage.SEGMENTING,
    ProcessingStage.SYNTHESIZING,
    ProcessingStage.PERSISTING,
    ProcessingStage.COMPLETED,
]

STAGE_PROGRESS = {
    ProcessingStage.PENDING: 0,
    ProcessingStage.EXTRACTING: 10,
    ProcessingStage.SEGMENTING: 30,
    ProcessingStage.SYNTHESIZING: 50,
    ProcessingStage.PERSISTING: 80,
    ProcessingStage.COMPLETED: 100,
}


class JobTracker:
    """
    Records stage transitions of a single run.

    Stages only move forward and progress never decreases. Every write goes through
    a status-guarded repository call; a write that matches no row means the job was
    force-failed elsewhere and raises StaleJob.
    """

    def __init__(self, jobs: JobRepository, job_id: str):
        self.jobs = jobs
        self.job_id = job_id
        self.stage = ProcessingStage.PENDING
        self.progress = 0

    def _check_forward(self, stage: ProcessingStage):
        if STAGE_ORDER.index(stage) <= STAGE_ORDER.index(self.stage):
            raise ValueError(f"Cannot move job {self.job_id} from {self.stage.value} to {stage.value}")

    async def claim(self, stage: ProcessingStage) -> bool:
        """Take ownership of a PENDING job. Returns False if it is not PENDING anymore."""
        self._check_forward(stage)
        progress = STAGE_PROGRESS[stage]
        if not await self.jobs.claim(self.job_id, stage, progress):
            return False
        self.stage, self.progress = stage, progress
        logger.info(f"Job {self.job_id} claimed at {stage.value} ({progress}%)")
        return True

    async def advance(self, stage: ProcessingStage):
        self._check_forward(stage)
        progress = max(self.progress, STAGE_PROGRESS[stage])
        if not await self.jobs.advance(self.job_id, stage, progress):
            raise StaleJob(self.job_id)
        self.stage, self.progress = stage, progress
        logger.info(f"Job {self.job_id} -> {stage.value} ({progress}%)")

    async def complete(self, questions: List[Question], warning: Optional[str] = None):
        self._check_forward(ProcessingStage.COMPLETED)
        if not await self.jobs.complete(self.job_id, questions, len(questions), warning):
            raise StaleJob(self.job_id)
        self.stage, self.progress = ProcessingStage.COMPLETED, 100
        logger.info(f"Job {self.job_id} completed with {len(questions)} questions")

    async def fail(self, message: str, failed_stage: Optional[str]) -> bool:
        failed = await self.jobs.fail(self.job_id, message, failed_stage)
        if failed:
            logger.warning(f"Job {self.job_id} failed at {failed_stage}: {message}")
        else:
            logger.info(f"Job {self.job_id} already terminal, failure not recorded: {message}")
        return failed

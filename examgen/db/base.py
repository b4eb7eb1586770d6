"""Repository interfaces.

The pipeline only talks to these abstractions, so PostgreSQL can be swapped for the
in-memory fakes used in tests. Every mutating job method is guarded by the expected
current status and returns ``False`` (or ``None``) when no row matched.
"""
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import List, Optional

from examgen.models.jobs import GenerationJob, ProcessingStage
from examgen.models.materials import CourseMaterial, Section
from examgen.models.questions import Question


class MaterialRepository(ABC):
    @abstractmethod
    async def get_material(self, material_id: str) -> Optional[CourseMaterial]:
        pass

    @abstractmethod
    async def mark_processed(
        self, material_id: str, markdown_content: str, sections: List[Section]
    ) -> bool:
        """Write flag, markdown and sections together if still unprocessed.

        Returns:
            True if this call performed the transition, False if the material was
            already processed (or does not exist).
        """
        pass


class JobRepository(ABC):
    @abstractmethod
    async def create_job(self, job: GenerationJob) -> GenerationJob:
        pass

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[GenerationJob]:
        pass

    @abstractmethod
    async def claim(self, job_id: str, stage: ProcessingStage, progress: int) -> bool:
        """Move a PENDING job to PROCESSING at the given stage."""
        pass

    @abstractmethod
    async def advance(self, job_id: str, stage: ProcessingStage, progress: int) -> bool:
        """Record a stage transition on a PROCESSING job. Progress is never lowered."""
        pass

    @abstractmethod
    async def complete(
        self,
        job_id: str,
        questions: List[Question],
        generated_count: int,
        warning_message: Optional[str] = None,
    ) -> bool:
        """Insert the questions and mark the job COMPLETED in one transaction."""
        pass

    @abstractmethod
    async def fail(self, job_id: str, error_message: str, failed_stage: Optional[str]) -> bool:
        """Mark an active job FAILED."""
        pass

    @abstractmethod
    async def reap_stale(self, threshold: timedelta, error_message: str) -> List[str]:
        """Fail every active job not updated within ``threshold``; return their ids."""
        pass


class QuestionRepository(ABC):
    @abstractmethod
    async def list_for_job(self, job_id: str) -> List[Question]:
        pass

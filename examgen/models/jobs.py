"""Pydantic models for generation job processing."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from examgen.models.questions import BloomLevel, Difficulty, Marks, QuestionStyle


class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProcessingStage(str, Enum):
    PENDING = "PENDING"
    EXTRACTING = "EXTRACTING"
    SEGMENTING = "SEGMENTING"
    SYNTHESIZING = "SYNTHESIZING"
    PERSISTING = "PERSISTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})


class GenerationQuotas(BaseModel):
    """Requested question counts for one generation job.

    ``per_bloom_level`` drives the total; difficulty and style counts are
    distribution targets inside that total.
    """

    model_config = ConfigDict(populate_by_name=True)

    per_bloom_level: Dict[BloomLevel, int] = Field(alias="perBloomLevel")
    per_difficulty: Dict[Difficulty, int] = Field(default_factory=dict, alias="perDifficulty")
    per_style: Dict[QuestionStyle, int] = Field(default_factory=dict, alias="perStyle")
    marks: List[Marks] = Field(default_factory=lambda: [Marks.TWO, Marks.EIGHT])

    @field_validator("per_bloom_level", "per_difficulty", "per_style")
    @classmethod
    def _counts_not_negative(cls, value: Dict[Any, int]) -> Dict[Any, int]:
        for key, count in value.items():
            if count < 0:
                raise ValueError(f"count for {key} must not be negative")
        return value

    @field_validator("marks")
    @classmethod
    def _marks_unique(cls, value: List[Marks]) -> List[Marks]:
        if not value:
            raise ValueError("at least one mark value is required")
        return sorted(set(value))

    @model_validator(mode="after")
    def _distribution_fits_total(self) -> "GenerationQuotas":
        total = self.total_requested
        if total <= 0:
            raise ValueError("at least one question must be requested")
        if sum(self.per_difficulty.values()) > total:
            raise ValueError("difficulty counts exceed the requested total")
        if sum(self.per_style.values()) > total:
            raise ValueError("question style counts exceed the requested total")
        return self

    @property
    def total_requested(self) -> int:
        return sum(self.per_bloom_level.values())

    def requested_levels(self) -> List[BloomLevel]:
        """Levels with a positive count, in taxonomy order."""
        return [level for level in BloomLevel if self.per_bloom_level.get(level, 0) > 0]


class GenerationJob(BaseModel):
    """Persisted state of one generation job."""

    id: str
    course_id: str
    material_id: Optional[str] = None
    unit: Optional[int] = None
    quotas: GenerationQuotas
    status: JobStatus = JobStatus.PENDING
    processing_stage: ProcessingStage = ProcessingStage.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    generated_count: int = 0
    total_requested: int = 0
    error_message: Optional[str] = None
    warning_message: Optional[str] = None
    failed_stage: Optional[str] = None
    initiated_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GenerationJobRequest(BaseModel):
    """Job submission from the request layer."""

    materialId: str
    courseId: str
    unit: int = Field(ge=1, le=10)
    quotas: GenerationQuotas
    initiatedBy: str


class JobPayload(BaseModel):
    """Payload for Cloud Tasks."""

    jobId: str
    jobType: str = "generate_questions"
    data: Dict[str, Any] = {}


class JobResult(BaseModel):
    """Externally visible snapshot of a job, returned by every run and poll."""

    jobId: str
    status: JobStatus
    processingStage: ProcessingStage
    progress: int
    generatedCount: int
    totalRequested: int
    errorMessage: Optional[str] = None
    warningMessage: Optional[str] = None
    failedStage: Optional[str] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: GenerationJob) -> "JobResult":
        return cls(
            jobId=job.id,
            status=job.status,
            processingStage=job.processing_stage,
            progress=job.progress,
            generatedCount=job.generated_count,
            totalRequested=job.total_requested,
            errorMessage=job.error_message,
            warningMessage=job.warning_message,
            failedStage=job.failed_stage,
            updatedAt=job.updated_at,
        )

"""Error taxonomy for the material-to-question pipeline.

Every stage-level failure derives from ``PipelineError``. The orchestrator catches
these at its boundary and records them on the job; anything else is treated as a
programming error and propagates after the job is marked failed.
"""
from typing import Optional


class PipelineError(Exception):
    """Base class for failures that terminate a generation job."""

    default_stage = "PROCESSING"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage

    def __str__(self) -> str:
        return self.message


class MalformedDocument(PipelineError):
    """The uploaded bytes are not a readable PDF."""

    default_stage = "EXTRACTING"


class ProcessingFailed(PipelineError):
    """Segmentation or the material write failed."""

    default_stage = "SEGMENTING"


class GenerationFailed(PipelineError):
    """The text-generation service errored or returned nothing usable."""

    default_stage = "SYNTHESIZING"


class StorageUnavailable(PipelineError):
    """The storage service could not return the material bytes."""

    default_stage = "EXTRACTING"


class MaterialNotFound(PipelineError):
    """The referenced course material does not exist."""

    default_stage = "EXTRACTING"


class StaleJob(Exception):
    """A guarded job write matched no row because the job was force-failed."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} is no longer active")
        self.job_id = job_id


class JobNotFound(Exception):
    """The requested generation job does not exist."""

    def __init__(self, job_id: str):
        super().__init__(f"Generation job {job_id} not found")
        self.job_id = job_id


class DispatcherUnavailable(Exception):
    """The asynchronous task dispatcher cannot accept work right now."""

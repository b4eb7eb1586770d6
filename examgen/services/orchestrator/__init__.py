"""Generation job state machine, pipeline and dispatch."""
from examgen.services.orchestrator.dispatch import GenerationJobService
from examgen.services.orchestrator.pipeline import GenerationPipeline
from examgen.services.orchestrator.tracker import STAGE_PROGRESS, JobTracker

__all__ = ["GenerationJobService", "GenerationPipeline", "JobTracker", "STAGE_PROGRESS"]

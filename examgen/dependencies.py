"""Service container wiring repositories, providers and pipeline together."""
import logging
from dataclasses import dataclass
from typing import Optional

import asyncpg
from fastapi import Header, HTTPException, Request

from examgen.config import Settings
from examgen.db.base import JobRepository, MaterialRepository, QuestionRepository
from examgen.db.connection import create_db_pool
from examgen.db.postgres import (
    PostgresJobRepository,
    PostgresMaterialRepository,
    PostgresQuestionRepository,
)
from examgen.services.llm import LLMProvider, create_provider
from examgen.services.material_store import MaterialStore
from examgen.services.orchestrator import GenerationJobService, GenerationPipeline
from examgen.services.question_synthesizer import QuestionSynthesizer
from examgen.services.reaper import StuckJobReaper
from examgen.services.storage import StorageService, create_storage
from examgen.services.task_queue import TaskDispatcher, build_dispatcher

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    config: Settings
    jobs: JobRepository
    materials: MaterialRepository
    questions: QuestionRepository
    material_store: MaterialStore
    pipeline: GenerationPipeline
    job_service: GenerationJobService
    reaper: StuckJobReaper
    pool: Optional[asyncpg.Pool] = None


def assemble_container(
    config: Settings,
    jobs: JobRepository,
    materials: MaterialRepository,
    questions: QuestionRepository,
    storage: StorageService,
    llm: LLMProvider,
    dispatcher: TaskDispatcher,
    pool: Optional[asyncpg.Pool] = None,
) -> ServiceContainer:
    """Wire services from already-built collaborators."""
    material_store = MaterialStore(
        materials,
        storage,
        min_content_chars=config.MIN_MATERIAL_CHARS,
        heading_max_length=config.HEADING_MAX_LENGTH,
    )
    synthesizer = QuestionSynthesizer(
        llm,
        timeout_seconds=config.GENERATION_TIMEOUT_SECONDS,
        max_context_chars=config.GENERATION_CONTEXT_CHARS,
    )
    pipeline = GenerationPipeline(jobs, material_store, synthesizer)

    return ServiceContainer(
        config=config,
        jobs=jobs,
        materials=materials,
        questions=questions,
        material_store=material_store,
        pipeline=pipeline,
        job_service=GenerationJobService(jobs, materials, pipeline, dispatcher),
        reaper=StuckJobReaper(jobs, stale_minutes=config.STALE_JOB_MINUTES),
        pool=pool,
    )


async def build_container(config: Settings) -> ServiceContainer:
    """Create the production container backed by PostgreSQL."""
    pool = await create_db_pool(config)
    return assemble_container(
        config,
        jobs=PostgresJobRepository(pool),
        materials=PostgresMaterialRepository(pool),
        questions=PostgresQuestionRepository(pool),
        storage=create_storage(config),
        llm=create_provider(config),
        dispatcher=build_dispatcher(config),
        pool=pool,
    )


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Service is not initialized")
    return container


def verify_internal_token(
    request: Request,
    x_ai_internal_token: Optional[str] = Header(default=None),
) -> None:
    """Reject worker calls that do not carry the shared internal token."""
    config = get_container(request).config
    if config.is_production and not config.AI_INTERNAL_TOKEN:
        raise HTTPException(status_code=500, detail="AI_INTERNAL_TOKEN is not configured")
    if config.AI_INTERNAL_TOKEN and x_ai_internal_token != config.AI_INTERNAL_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")

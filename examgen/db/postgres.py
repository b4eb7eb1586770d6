"""asyncpg implementations of the repository interfaces."""
import json
import logging
from datetime import timedelta
from typing import Any, List, Optional

import asyncpg

from examgen.db.base import JobRepository, MaterialRepository, QuestionRepository
from examgen.db.connection import execute_in_transaction
from examgen.models.jobs import GenerationJob, GenerationQuotas, JobStatus, ProcessingStage
from examgen.models.materials import CourseMaterial, Section
from examgen.models.questions import Question

logger = logging.getLogger(__name__)

_JOB_COLUMNS = """
    id, course_id, material_id, unit, quotas, status, processing_stage, progress,
    generated_count, total_requested, error_message, warning_message, failed_stage,
    initiated_by, created_at, updated_at
"""


def _rows_affected(status: str) -> int:
    """Parse the row count from an asyncpg command tag such as ``UPDATE 1``."""
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError):
        return 0


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_job(row: asyncpg.Record) -> GenerationJob:
    return GenerationJob(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        material_id=str(row["material_id"]) if row["material_id"] else None,
        unit=row["unit"],
        quotas=GenerationQuotas.model_validate(_load_json(row["quotas"])),
        status=JobStatus(row["status"]),
        processing_stage=ProcessingStage(row["processing_stage"]),
        progress=row["progress"],
        generated_count=row["generated_count"],
        total_requested=row["total_requested"],
        error_message=row["error_message"],
        warning_message=row["warning_message"],
        failed_stage=row["failed_stage"],
        initiated_by=row["initiated_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_material(row: asyncpg.Record) -> CourseMaterial:
    sections = _load_json(row["sections"])
    return CourseMaterial(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        material_type=row["material_type"],
        unit=row["unit"],
        title=row["title"] or "",
        file_path=row["file_path"],
        is_processed=row["is_processed"],
        markdown_content=row["markdown_content"],
        sections=[Section.model_validate(s) for s in sections] if sections is not None else None,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_question(row: asyncpg.Record) -> Question:
    return Question(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        unit=row["unit"],
        source_material_id=str(row["source_material_id"]) if row["source_material_id"] else None,
        generation_job_id=str(row["generation_job_id"]),
        question=row["question"],
        answer=row["answer"],
        bloom_level=row["bloom_level"],
        marks=row["marks"],
        question_style=row["question_style"],
        difficulty=row["difficulty"],
        topic=row["topic"],
        created_at=row["created_at"],
    )


class PostgresMaterialRepository(MaterialRepository):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_material(self, material_id: str) -> Optional[CourseMaterial]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, course_id, material_type, unit, title, file_path, is_processed,
                       markdown_content, sections, created_at, updated_at
                FROM course_materials
                WHERE id = $1
                """,
                material_id,
            )
        return _row_to_material(row) if row else None

    async def mark_processed(
        self, material_id: str, markdown_content: str, sections: List[Section]
    ) -> bool:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE course_materials
                SET is_processed = TRUE,
                    markdown_content = $2,
                    sections = $3::jsonb,
                    updated_at = NOW()
                WHERE id = $1 AND is_processed = FALSE
                """,
                material_id,
                markdown_content,
                json.dumps([s.model_dump() for s in sections]),
            )
        return _rows_affected(status) == 1


class PostgresJobRepository(JobRepository):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create_job(self, job: GenerationJob) -> GenerationJob:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO generation_jobs
                (id, course_id, material_id, unit, quotas, status, processing_stage, progress,
                 generated_count, total_requested, initiated_by, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5::jsonb, 'PENDING', 'PENDING', 0, 0, $6, $7, NOW(), NOW())
                RETURNING {_JOB_COLUMNS}
                """,
                job.id,
                job.course_id,
                job.material_id,
                job.unit,
                json.dumps(job.quotas.model_dump(mode="json", by_alias=True)),
                job.total_requested,
                job.initiated_by,
            )
        return _row_to_job(row)

    async def get_job(self, job_id: str) -> Optional[GenerationJob]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_JOB_COLUMNS} FROM generation_jobs WHERE id = $1",
                job_id,
            )
        return _row_to_job(row) if row else None

    async def claim(self, job_id: str, stage: ProcessingStage, progress: int) -> bool:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE generation_jobs
                SET status = 'PROCESSING',
                    processing_stage = $2,
                    progress = GREATEST(progress, $3),
                    updated_at = NOW()
                WHERE id = $1 AND status = 'PENDING'
                """,
                job_id,
                stage.value,
                progress,
            )
        return _rows_affected(status) == 1

    async def advance(self, job_id: str, stage: ProcessingStage, progress: int) -> bool:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE generation_jobs
                SET processing_stage = $2,
                    progress = GREATEST(progress, $3),
                    updated_at = NOW()
                WHERE id = $1 AND status = 'PROCESSING'
                """,
                job_id,
                stage.value,
                progress,
            )
        return _rows_affected(status) == 1

    async def complete(
        self,
        job_id: str,
        questions: List[Question],
        generated_count: int,
        warning_message: Optional[str] = None,
    ) -> bool:
        async def write_results(conn: asyncpg.Connection) -> bool:
            updated = await conn.fetchval(
                """
                UPDATE generation_jobs
                SET status = 'COMPLETED',
                    processing_stage = 'COMPLETED',
                    progress = 100,
                    generated_count = $2,
                    warning_message = $3,
                    updated_at = NOW()
                WHERE id = $1 AND status = 'PROCESSING'
                RETURNING id
                """,
                job_id,
                generated_count,
                warning_message,
            )
            if updated is None:
                return False

            await conn.executemany(
                """
                INSERT INTO questions
                (id, course_id, unit, source_material_id, generation_job_id, question, answer,
                 bloom_level, marks, question_style, difficulty, topic, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, NOW())
                """,
                [
                    (
                        q.id,
                        q.course_id,
                        q.unit,
                        q.source_material_id,
                        q.generation_job_id,
                        q.question,
                        q.answer,
                        q.bloom_level.value,
                        int(q.marks),
                        q.question_style.value,
                        q.difficulty.value,
                        q.topic,
                    )
                    for q in questions
                ],
            )
            return True

        return await execute_in_transaction(self.pool, write_results)

    async def fail(self, job_id: str, error_message: str, failed_stage: Optional[str]) -> bool:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE generation_jobs
                SET status = 'FAILED',
                    processing_stage = 'FAILED',
                    error_message = $2,
                    failed_stage = $3,
                    updated_at = NOW()
                WHERE id = $1 AND status IN ('PENDING', 'PROCESSING')
                """,
                job_id,
                error_message,
                failed_stage,
            )
        return _rows_affected(status) == 1

    async def reap_stale(self, threshold: timedelta, error_message: str) -> List[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                UPDATE generation_jobs
                SET status = 'FAILED',
                    processing_stage = 'FAILED',
                    failed_stage = processing_stage,
                    error_message = $2,
                    updated_at = NOW()
                WHERE status IN ('PENDING', 'PROCESSING')
                  AND updated_at < NOW() - $1::interval
                RETURNING id
                """,
                threshold,
                error_message,
            )
        return [str(row["id"]) for row in rows]


class PostgresQuestionRepository(QuestionRepository):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def list_for_job(self, job_id: str) -> List[Question]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT id, course_id, unit, source_material_id, generation_job_id, question,
                       answer, bloom_level, marks, question_style, difficulty, topic, created_at
                FROM questions
                WHERE generation_job_id = $1
                ORDER BY created_at, id
                """,
                job_id,
            )
        return [_row_to_question(row) for row in rows]

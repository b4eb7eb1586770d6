"""Database connection utilities."""
import logging
from typing import Optional

import asyncpg

from examgen.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


async def create_db_pool(config: Optional[Settings] = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool used by the repositories."""
    config = config or default_settings
    pool = await asyncpg.create_pool(
        config.DATABASE_URL,
        min_size=config.DB_POOL_MIN_SIZE,
        max_size=config.DB_POOL_MAX_SIZE,
    )
    logger.info(
        f"Database pool created (min={config.DB_POOL_MIN_SIZE}, max={config.DB_POOL_MAX_SIZE})"
    )
    return pool


async def check_db(pool: asyncpg.Pool) -> bool:
    """Run a trivial query to confirm the database is reachable."""
    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT 1") == 1


async def close_db_pool(pool: Optional[asyncpg.Pool]):
    """Close database connection pool."""
    if pool is not None:
        await pool.close()
        logger.info("Database pool closed")


async def execute_in_transaction(pool: asyncpg.Pool, operations):
    """
    Execute multiple database operations in a transaction.

    Args:
        pool: Connection pool to acquire from
        operations: Async function that takes a connection and performs operations

    Returns:
        Result of the operations function

    Example:
        async def insert_questions(conn):
            for question in questions:
                await conn.execute("INSERT INTO ...", ...)
            return len(questions)

        result = await execute_in_transaction(pool, insert_questions)
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            return await operations(conn)

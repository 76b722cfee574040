"""Database connection pool factory and health check."""

import asyncio
import logging

import asyncpg

logger = logging.getLogger(__name__)


async def create_pool(dsn: str, min_size: int = 2, max_size: int = 10) -> asyncpg.Pool:
    """
    Create the database connection pool and run a health check.

    Args:
        dsn: PostgreSQL connection string
        min_size: Minimum pool size
        max_size: Maximum pool size

    Returns:
        asyncpg.Pool: Initialized database connection pool

    Raises:
        asyncpg.PostgresError: If database is unreachable or health check fails
        asyncio.TimeoutError: If connection attempt exceeds 5 seconds
    """
    try:
        pool = await asyncio.wait_for(
            asyncpg.create_pool(dsn, min_size=min_size, max_size=max_size),
            timeout=5.0,
        )
    except asyncio.TimeoutError:
        raise asyncio.TimeoutError(
            "Database connection timed out after 5 seconds. "
            "Ensure PostgreSQL is running and accessible."
        )

    if pool is None:
        raise RuntimeError("Failed to create database pool")

    # Health check
    try:
        async with pool.acquire() as conn:
            result = await conn.fetchval("SELECT 1")
            if result != 1:
                raise RuntimeError(f"Health check failed: expected 1, got {result}")
    except Exception as e:
        await pool.close()
        raise RuntimeError(f"Database health check failed: {e}") from e

    logger.info(f"Database pool initialized: min={min_size}, max={max_size}")
    return pool


async def close_pool(pool: asyncpg.Pool) -> None:
    """
    Close the database connection pool.

    Attempts graceful close with a 5-second timeout. If the timeout occurs
    (e.g., due to leaked connections), forces termination to prevent hangs.
    """
    try:
        await asyncio.wait_for(pool.close(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning(
            "Pool close timed out after 5 seconds. "
            "Forcing termination (likely leaked connection)."
        )
        pool.terminate()

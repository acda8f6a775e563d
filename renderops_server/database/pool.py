"""
Connection pools for target databases.

One asyncpg pool is kept per connection string and reused by every request
that targets the same database.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

import asyncpg

from renderops_server.config import get_settings

logger = logging.getLogger(__name__)

_pools: dict[str, asyncpg.Pool] = {}
_lock: Optional[asyncio.Lock] = None


def _get_lock() -> asyncio.Lock:
    global _lock
    if _lock is None:
        _lock = asyncio.Lock()
    return _lock


async def get_pool(connection_string: str) -> asyncpg.Pool:
    """
    Get or create the pool for a connection string.

    Args:
        connection_string: PostgreSQL DSN

    Returns:
        asyncpg connection pool
    """
    pool = _pools.get(connection_string)
    if pool is not None:
        return pool

    async with _get_lock():
        pool = _pools.get(connection_string)
        if pool is None:
            settings = get_settings()
            pool = await asyncpg.create_pool(
                connection_string,
                min_size=0,
                max_size=settings.target_pool_max_size,
                max_inactive_connection_lifetime=settings.target_pool_idle_timeout,
                timeout=settings.target_connect_timeout,
            )
            _pools[connection_string] = pool
            logger.info("Opened target pool (%d pools cached)", len(_pools))
    return pool


async def query(
    connection_string: str,
    sql: str,
    params: Optional[Sequence[Any]] = None,
) -> list[dict[str, Any]]:
    """Run a statement and return its rows as dicts."""
    pool = await get_pool(connection_string)
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, *(params or []))
    return [dict(row) for row in rows]


async def fetchval(
    connection_string: str,
    sql: str,
    params: Optional[Sequence[Any]] = None,
) -> Any:
    pool = await get_pool(connection_string)
    async with pool.acquire() as conn:
        return await conn.fetchval(sql, *(params or []))


async def close_pool(connection_string: str) -> None:
    pool = _pools.pop(connection_string, None)
    if pool is not None:
        await pool.close()


async def close_all_pools() -> None:
    """Close every cached pool. Called on application shutdown."""
    pools = list(_pools.values())
    _pools.clear()
    for pool in pools:
        await pool.close()
    if pools:
        logger.info("Closed %d target pools", len(pools))

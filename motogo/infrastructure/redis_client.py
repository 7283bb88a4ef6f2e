"""
Redis connection pool backing the session store.

The pool is created on first use so processes that run with the
in-memory session store never open a Redis connection.
"""

from typing import Optional

import redis.asyncio as aioredis

from motogo.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


def get_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Return a client on the shared pool (created from *url* on first call)."""
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            url or settings.redis_url, decode_responses=True
        )
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None

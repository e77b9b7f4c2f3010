"""
Redis connection configuration and utilities.
"""
import json
from typing import Any, Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from navguard.core.config import settings

logger = structlog.get_logger(__name__)

# Redis connection pool
redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """
    Get or create Redis connection pool.

    Returns:
        Redis connection pool
    """
    global redis_pool

    if redis_pool is None:
        redis_pool = redis.ConnectionPool.from_url(
            str(settings.REDIS_URL),
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )

    return redis_pool


async def get_redis_client() -> redis.Redis:
    """Redis client bound to the shared pool."""
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis() -> None:
    """Disconnect the shared pool, if one was created."""
    global redis_pool

    if redis_pool is not None:
        await redis_pool.disconnect()
        redis_pool = None


class RedisJSONStore:
    """
    Prefixed JSON key/value access on top of the shared pool.
    """

    def __init__(self, prefix: str = "navguard"):
        self.prefix = prefix

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis.

        Args:
            key: Key without prefix

        Returns:
            Decoded value or None

        Raises:
            RedisError: connection or command failure
        """
        client = await get_redis_client()
        value = await client.get(self._make_key(key))
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error("redis_value_decode_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> None:
        client = await get_redis_client()
        serialized = json.dumps(value)
        if expire:
            await client.setex(self._make_key(key), expire, serialized)
        else:
            await client.set(self._make_key(key), serialized)

    async def delete(self, key: str) -> bool:
        client = await get_redis_client()
        return bool(await client.delete(self._make_key(key)))

    async def ping(self) -> bool:
        try:
            client = await get_redis_client()
            return bool(await client.ping())
        except RedisError as e:
            logger.error("redis_ping_error", error=str(e))
            return False

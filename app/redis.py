"""
Redis client configuration using redis-py (asyncio).
Backs the cross-user daily forecast cache.
"""

from typing import Optional
import logging

from redis import asyncio as aioredis
from redis.asyncio.client import Redis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "astra"


class RedisClient:
    """Async Redis client wrapper."""

    _client: Optional[Redis] = None

    @classmethod
    def get_client(cls) -> Redis:
        """Get or create Redis client."""
        if cls._client is None:
            if not settings.redis_url:
                raise RuntimeError("REDIS_URL not configured")

            cls._client = aioredis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5.0,
                health_check_interval=30,
            )
            logger.info("Redis client initialized")

        return cls._client

    @classmethod
    async def ping(cls) -> bool:
        """True if the forecast cache backend answers."""
        try:
            return bool(await cls.get_client().ping())
        except (RedisError, RuntimeError, OSError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    @classmethod
    async def close(cls) -> None:
        if cls._client:
            await cls._client.aclose()
            cls._client = None
            logger.info("Redis client closed")


def make_key(*parts: str) -> str:
    """Build a namespaced redis key, e.g. astra:forecast:LEO:2024-06-01:en."""
    return ":".join((KEY_PREFIX, *parts))

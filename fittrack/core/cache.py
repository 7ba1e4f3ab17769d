"""
Redis cache for external statistics lookups.

Degrades gracefully: when REDIS_URL is unset or Redis is unreachable every
call is a miss and writes are dropped.
"""
import json
from typing import Optional, Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from fittrack.core.config import settings
from fittrack.core.logger import get_logger

logger = get_logger("cache")

_redis_client: Optional[redis.Redis] = None
_redis_disabled = False


async def get_redis_client() -> Optional[redis.Redis]:
    """Get the shared Redis client. Returns None if Redis is unavailable."""
    global _redis_client, _redis_disabled

    if _redis_client is not None:
        return _redis_client
    if _redis_disabled or not settings.REDIS_URL:
        return None

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        await client.ping()
        logger.info("Redis connection established")
        _redis_client = client
        return _redis_client
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable: {e}. Caching disabled.")
        _redis_disabled = True
        return None


def cache_key(prefix: str, *args) -> str:
    """Generate cache key from prefix and arguments, skipping None values."""
    return ":".join([prefix] + [str(arg) for arg in args if arg is not None])


async def get_cache(key: str) -> Optional[Any]:
    client = await get_redis_client()
    if not client:
        return None

    try:
        value = await client.get(key)
        return json.loads(value) if value else None
    except (RedisError, ValueError) as e:
        logger.warning(f"Cache get error for key {key}: {e}")
        return None


async def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    client = await get_redis_client()
    if not client:
        return False

    try:
        await client.setex(key, ttl or settings.STATS_CACHE_TTL, json.dumps(value, default=str))
        return True
    except (RedisError, TypeError) as e:
        logger.warning(f"Cache set error for key {key}: {e}")
        return False

"""Redis client lifecycle.

The client is created once in the application lifespan and handed to the
services that need it; nothing reaches for it as module-level state.
"""

import redis.asyncio as redis
import structlog

from biolink.core.config import Settings

logger = structlog.get_logger()

# Cache key prefixes
LINK_CACHE_PREFIX = "link:"


def link_cache_key(short_code: str) -> str:
    """Generate cache key for a short link snapshot."""
    return f"{LINK_CACHE_PREFIX}{short_code}"


def create_redis_client(settings: Settings) -> redis.Redis:
    """Create the Redis client with bounded socket timeouts."""
    client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
    )
    logger.info("Redis client initialized", url=settings.redis_url)
    return client


async def close_redis(client: redis.Redis) -> None:
    """Close the Redis connection pool."""
    await client.aclose()
    logger.info("Redis connection closed")

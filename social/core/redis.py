# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: it backs the activity read cache and the report rate
limit. The service runs without it.
"""

import redis.asyncio as redis

from social.config import get_settings
from social.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Initialize the Redis connection pool and verify it with a ping."""
    global _redis_client

    settings = get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get Redis client instance."""
    return _redis_client


def activity_cache_key(resource_type: str, resource_id: str) -> str:
    """Cache key of one activity record."""
    return f"activity:{resource_type}:{resource_id}"


def report_rate_key(source_id: str) -> str:
    """Hourly report counter of one source."""
    return f"reports:rate:{source_id}"


def activity_generation_key(resource_type: str, resource_id: str) -> str:
    """Invalidation counter of one activity record."""
    return f"activity:{resource_type}:{resource_id}:gen"

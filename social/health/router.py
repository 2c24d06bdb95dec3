"""Health check endpoints."""

from fastapi import APIRouter, Response, status

from social.config import get_settings
from social.core.database import AsyncCassandraConnection
from social.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the application process is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(response: Response) -> dict[str, str | bool]:
    """Readiness check: Cassandra is required, Redis is optional."""
    settings = get_settings()
    cassandra_ready = AsyncCassandraConnection.is_connected()
    if not cassandra_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if cassandra_ready else "unavailable",
        "environment": settings.environment,
        "cassandra": cassandra_ready,
        "redis": get_redis() is not None,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

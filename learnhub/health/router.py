"""Health check endpoints."""

from fastapi import APIRouter, Request

from learnhub.config.settings import get_settings
from learnhub.core.database import AsyncCassandraConnection
from learnhub.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - the catalog needs Cassandra; Redis is optional."""
    settings = get_settings()
    database = (
        getattr(request.app.state, "course_service", None) is not None
        and AsyncCassandraConnection.is_connected()
    )
    return {
        "status": "ready" if database else "degraded",
        "environment": settings.environment,
        "database": database,
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

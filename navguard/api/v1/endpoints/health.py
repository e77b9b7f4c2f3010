"""
Health check endpoints.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from navguard.core.dependencies import Services, get_services
from navguard.infrastructure.cache import RedisJSONStore

router = APIRouter()


@router.get("/health")
async def health_check(services: Services = Depends(get_services)) -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "navguard",
        "version": services.settings.APP_VERSION,
        "environment": services.settings.ENVIRONMENT,
    }


@router.get("/health/ready")
async def readiness_check(services: Services = Depends(get_services)) -> Dict[str, Any]:
    """
    Readiness check including the session cache.

    Returns:
        Readiness status with component health
    """
    components = {"api": "healthy"}

    if services.settings.SESSION_BACKEND == "redis":
        healthy = await RedisJSONStore().ping()
        components["cache"] = "healthy" if healthy else "unhealthy"

    all_healthy = all(status == "healthy" for status in components.values())

    return {
        "status": "ready" if all_healthy else "not ready",
        "components": components,
    }

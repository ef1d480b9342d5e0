"""Health check endpoints for monitoring and observability.

This module provides:
- GET /health - Basic health check
- GET /health/live - Liveness probe (always returns 200 if running)
- GET /health/ready - Readiness probe (storage backend and Redis status)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from subbed.api.dependencies import get_services
from subbed.api.services import AppServices
from subbed.core.constants import APP_VERSION, START_TIME

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def check_storage_health(services: AppServices) -> dict[str, Any]:
    """Check the active storage backend.

    Returns:
        Health status dictionary
    """
    bundle = services.stores
    result: dict[str, Any] = {
        "status": "healthy",
        "backend": bundle.backend,
        "available": True,
    }

    if bundle.manager is None:
        return result

    start = time.perf_counter()
    if await bundle.manager.ping():
        result["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
    else:
        result["status"] = "unhealthy"
        result["available"] = False
        logger.warning("Storage health check failed for backend %s", bundle.backend)

    return result


@router.get(
    "/health",
    response_model=dict[str, Any],
    summary="Basic health check",
    description="Quick health check for load balancers. Returns 200 if API is responding.",
    operation_id="health_check",
)
async def health_check() -> JSONResponse:
    """Basic health check endpoint.

    Does not check dependencies.

    Returns:
        JSONResponse with health status
    """
    uptime = (datetime.now(timezone.utc) - START_TIME).total_seconds()
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "version": APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(uptime, 2),
        },
    )


@router.get(
    "/health/live",
    response_model=dict[str, Any],
    summary="Liveness probe",
    operation_id="liveness_probe",
)
async def liveness_probe() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "alive",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get(
    "/health/ready",
    response_model=dict[str, Any],
    summary="Readiness probe",
    description="Checks the storage backend and, when enabled, the Redis feed cache.",
    operation_id="readiness_probe",
    responses={
        200: {"description": "Service is ready (possibly degraded)"},
        503: {"description": "Storage is unavailable"},
    },
)
async def readiness_probe(services: AppServices = Depends(get_services)) -> JSONResponse:
    """Readiness probe endpoint.

    Redis is optional: without it the feed cache is bypassed and the
    service reports ``degraded``. Storage is required.

    Returns:
        JSONResponse with readiness status
    """
    components: dict[str, Any] = {
        "api": {"status": "healthy"},
        "storage": await check_storage_health(services),
    }

    if services.feed_cache is not None:
        components["redis"] = await services.feed_cache.health_check()

    if components["storage"]["status"] != "healthy":
        overall_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif all(comp.get("status") == "healthy" for comp in components.values()):
        overall_status = "healthy"
        status_code = status.HTTP_200_OK
    else:
        overall_status = "degraded"
        status_code = status.HTTP_200_OK

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall_status,
            "version": APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
        },
    )

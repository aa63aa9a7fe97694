"""Health check endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Response, status

from zipserve.dependencies import get_health_service
from zipserve.models.health import HealthCheckResponse

if TYPE_CHECKING:
    from zipserve.services.health import HealthCheckService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """
    Simple health check for liveness probe.

    Returns 200 if service is running.
    """
    return {"status": "ok"}


@router.get("/health/ready", response_model=HealthCheckResponse)
async def health_ready(
    response: Response,
    health_service: HealthCheckService = Depends(get_health_service),
) -> HealthCheckResponse:
    """
    Readiness check that verifies the results directory is readable.

    Returns:
        - 200 if system is healthy or degraded
        - 503 if system is unhealthy
    """
    health_check = await health_service.check_health()

    if not health_check.is_ready():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_check

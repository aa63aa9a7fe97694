from __future__ import annotations

from typing import TYPE_CHECKING

from zipserve.services.container import get_container

if TYPE_CHECKING:
    from zipserve.services.health import HealthCheckService
    from zipserve.services.unzip import UnzipService


async def get_unzip_service() -> UnzipService:
    """Get unzip service via dependency injection."""
    container = get_container()
    return container.unzip_service


async def get_health_service() -> HealthCheckService:
    """Get health check service via dependency injection."""
    container = get_container()
    return container.health_service

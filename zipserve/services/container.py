"""
Service dependency container.

Centralizes service creation and access without global state mutation
in API modules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zipserve.services.health import HealthCheckService
    from zipserve.services.unzip import UnzipService


class ServiceContainer:
    """Container for all application services.

    Services are injected via FastAPI's Depends() mechanism.
    """

    def __init__(
        self,
        unzip_service: UnzipService,
        health_service: HealthCheckService,
    ) -> None:
        """Initialize service container with all required services."""
        self.unzip_service = unzip_service
        self.health_service = health_service


_container: ServiceContainer | None = None


def init_container(
    unzip_service: UnzipService,
    health_service: HealthCheckService,
) -> None:
    """Initialize service container (called once in FastAPI lifespan).

    Args:
        unzip_service: UnzipService serving archive contents
        health_service: HealthCheckService for readiness checks
    """
    global _container

    _container = ServiceContainer(
        unzip_service=unzip_service,
        health_service=health_service,
    )


def reset_container() -> None:
    """Drop the container (used on shutdown and between tests)."""
    global _container
    _container = None


def get_container() -> ServiceContainer:
    """Get service container (use via FastAPI Depends).

    Returns:
        ServiceContainer with all initialized services

    Raises:
        RuntimeError: If container not initialized (lifespan not running)
    """
    if _container is None:
        msg = "Service container not initialized - application lifespan may not be running"
        raise RuntimeError(msg)
    return _container

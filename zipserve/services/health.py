"""Health check service."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import TYPE_CHECKING

from zipserve.models.health import HealthCheckResponse, HealthStatus, ServiceHealth
from zipserve.services.archive_locator import normalize_extension
from zipserve.utils.error_handling import log_errors

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class HealthCheckService:
    """Service for checking system health."""

    def __init__(
        self,
        results_directory: Path,
        archive_extension: str = "zip",
        version: str = "unknown",
    ) -> None:
        """
        Initialize health check service.

        Args:
            results_directory: Directory the archives are served from
            archive_extension: Extension counted as an archive
            version: Application version string
        """
        self.results_directory = results_directory
        self.archive_extension = normalize_extension(archive_extension)
        self.version = version

    async def check_results_directory_health(self) -> ServiceHealth:
        """
        Check that the results directory exists and can be listed.

        Read access is all the server needs; it never writes there.
        """
        start = time.perf_counter()

        try:
            archive_count = await asyncio.to_thread(self._count_archives)
        except FileNotFoundError:
            return ServiceHealth(
                name="results_directory",
                status=HealthStatus.UNHEALTHY,
                message="Results directory does not exist",
                details={"path": str(self.results_directory)},
            )
        except NotADirectoryError:
            return ServiceHealth(
                name="results_directory",
                status=HealthStatus.UNHEALTHY,
                message="Results path is not a directory",
                details={"path": str(self.results_directory)},
            )
        except PermissionError as e:
            return ServiceHealth(
                name="results_directory",
                status=HealthStatus.UNHEALTHY,
                message=f"Results directory not readable: {e}",
                details={"path": str(self.results_directory)},
            )

        elapsed = (time.perf_counter() - start) * 1000

        return ServiceHealth(
            name="results_directory",
            status=HealthStatus.HEALTHY,
            message="Results directory readable",
            response_time_ms=elapsed,
            details={
                "path": str(self.results_directory),
                "archives": archive_count,
            },
        )

    @log_errors("health_check")
    async def check_health(self) -> HealthCheckResponse:
        """
        Perform complete health check.

        Returns:
            HealthCheckResponse with overall status and component details
        """
        services = [await self.check_results_directory_health()]

        if any(s.status == HealthStatus.UNHEALTHY for s in services):
            overall_status = HealthStatus.UNHEALTHY
        elif any(s.status == HealthStatus.DEGRADED for s in services):
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthCheckResponse(
            status=overall_status,
            version=self.version,
            services=services,
        )

    def _count_archives(self) -> int:
        suffix = f".{self.archive_extension}"
        with os.scandir(self.results_directory) as entries:
            return sum(
                1
                for entry in entries
                if entry.name.endswith(suffix) and entry.is_file(follow_symlinks=False)
            )

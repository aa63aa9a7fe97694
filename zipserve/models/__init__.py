"""Models for zipserve."""

from zipserve.models.directory_listing import BreadcrumbSegment, ChildEntry, DirectoryListing
from zipserve.models.health import HealthCheckResponse, HealthStatus, ServiceHealth

__all__ = [
    "BreadcrumbSegment",
    "ChildEntry",
    "DirectoryListing",
    "HealthCheckResponse",
    "HealthStatus",
    "ServiceHealth",
]

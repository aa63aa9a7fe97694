"""Tests for health check endpoints and service."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from zipserve.models.health import HealthCheckResponse, HealthStatus, ServiceHealth
from zipserve.services.health import HealthCheckService


@pytest.mark.asyncio
async def test_results_directory_health_check_healthy(results_dir: Path, make_zip) -> None:
    """Test health check when the results directory is readable."""
    make_zip("a.zip", {"x.txt": b"x"})
    make_zip("b.zip", {"y.txt": b"y"})
    (results_dir / "notes.txt").write_text("not an archive")
    (results_dir / "dir.zip").mkdir()

    health_service = HealthCheckService(results_directory=results_dir)

    health = await health_service.check_results_directory_health()

    assert health.name == "results_directory"
    assert health.status == HealthStatus.HEALTHY
    assert health.details == {"path": str(results_dir), "archives": 2}
    assert health.response_time_ms is not None


@pytest.mark.asyncio
async def test_results_directory_health_check_missing(tmp_path: Path) -> None:
    """Test health check when the results directory doesn't exist."""
    health_service = HealthCheckService(results_directory=tmp_path / "nonexistent")

    health = await health_service.check_results_directory_health()

    assert health.status == HealthStatus.UNHEALTHY
    assert "does not exist" in health.message


@pytest.mark.asyncio
async def test_results_directory_health_check_not_a_directory(tmp_path: Path) -> None:
    """Test health check when the results path is a file."""
    results_file = tmp_path / "results"
    results_file.write_text("oops")
    health_service = HealthCheckService(results_directory=results_file)

    health = await health_service.check_results_directory_health()

    assert health.status == HealthStatus.UNHEALTHY
    assert "not a directory" in health.message


@pytest.mark.asyncio
async def test_archive_extension_is_configurable(results_dir: Path, make_zip) -> None:
    """Test that only the configured extension is counted."""
    make_zip("a.zip", {"x.txt": b"x"})
    make_zip("b.jar", {"y.txt": b"y"})

    health_service = HealthCheckService(results_directory=results_dir, archive_extension=".jar")

    health = await health_service.check_results_directory_health()

    assert health.details["archives"] == 1


@pytest.mark.asyncio
async def test_check_health_overall_status(results_dir: Path, tmp_path: Path) -> None:
    """Test overall status follows the component status."""
    healthy = await HealthCheckService(results_directory=results_dir, version="1.2.3").check_health()
    unhealthy = await HealthCheckService(results_directory=tmp_path / "missing").check_health()

    assert healthy.status == HealthStatus.HEALTHY
    assert healthy.version == "1.2.3"
    assert healthy.is_ready()
    assert unhealthy.status == HealthStatus.UNHEALTHY
    assert not unhealthy.is_ready()


def test_health_check_response_is_ready() -> None:
    """Degraded still serves traffic; unhealthy does not."""
    component = ServiceHealth(name="results_directory", status=HealthStatus.DEGRADED)

    degraded = HealthCheckResponse(status=HealthStatus.DEGRADED, version="x", services=[component])
    unhealthy = HealthCheckResponse(status=HealthStatus.UNHEALTHY, version="x")

    assert degraded.is_ready()
    assert not unhealthy.is_ready()


def test_liveness_endpoint(unzip_client: TestClient) -> None:
    response = unzip_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_endpoint_healthy(unzip_client: TestClient) -> None:
    response = unzip_client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "test-version"
    assert data["services"][0]["name"] == "results_directory"


def test_readiness_endpoint_unhealthy(unzip_client: TestClient, results_dir: Path) -> None:
    results_dir.rmdir()

    response = unzip_client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"

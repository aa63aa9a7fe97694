import os
import stat
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Set up minimal test environment BEFORE any imports from zipserve
# This must happen before pytest collects tests
_tmp_dir = tempfile.TemporaryDirectory(prefix="pytest_config_")
_results_dir = Path(_tmp_dir.name) / "results"
_results_dir.mkdir()
_config_file = Path(_tmp_dir.name) / "config.yaml"
_config_file.write_text(
    f"""
results:
  directory: {_results_dir}
  archive_extension: zip

logging:
  level: INFO
  json: true
"""
)
os.environ["CONFIG_PATH"] = str(_config_file)

ZipEntries = dict[str, bytes | None]


def write_zip(path: Path, entries: ZipEntries) -> Path:
    """Write a zip archive; a None value makes an explicit directory entry."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            if content is None:
                archive.mkdir(name.rstrip("/"))
            else:
                archive.writestr(name, content)
    return path


def _add_symlink_entry(path: Path, name: str, target: str) -> None:
    """Append an entry carrying unix symlink mode bits to an existing archive."""
    info = zipfile.ZipInfo(name)
    info.create_system = 3  # unix
    info.external_attr = (stat.S_IFLNK | 0o777) << 16
    with zipfile.ZipFile(path, "a") as archive:
        archive.writestr(info, target)


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    """Create a temporary results directory."""
    directory = tmp_path / "results"
    directory.mkdir()
    return directory


@pytest.fixture
def make_zip(results_dir: Path) -> Callable[[str, ZipEntries], Path]:
    """Factory writing archives into the results directory."""

    def _make_zip(name: str, entries: ZipEntries) -> Path:
        return write_zip(results_dir / name, entries)

    return _make_zip


@pytest.fixture
def run_zip(make_zip: Callable[[str, ZipEntries], Path]) -> Path:
    """Archive with an implicit logs/ directory holding a 10 byte file."""
    return make_zip("run.zip", {"logs/out.txt": b"0123456789"})


@pytest.fixture
def archive_reader():
    from zipserve.services.archive_reader import ArchiveEntryReader

    return ArchiveEntryReader()


@pytest.fixture
def content_streamer(archive_reader):
    from zipserve.services.content_streamer import ContentStreamer

    return ContentStreamer(reader=archive_reader, chunk_size=4)


@pytest.fixture
def unzip_service(results_dir: Path, archive_reader, content_streamer):
    """UnzipService over the temporary results directory."""
    from zipserve.services.unzip import UnzipService

    return UnzipService(
        results_directory=results_dir,
        archive_extension="zip",
        reader=archive_reader,
        content_streamer=content_streamer,
    )


@pytest.fixture
def unzip_client(results_dir: Path, unzip_service):
    """TestClient with only the unzip and health routers mounted."""
    from zipserve.api import health, unzip
    from zipserve.services.container import init_container, reset_container
    from zipserve.services.health import HealthCheckService

    app = FastAPI(title="zipserve test")
    app.include_router(health.router)
    app.include_router(unzip.router)

    init_container(
        unzip_service=unzip_service,
        health_service=HealthCheckService(
            results_directory=results_dir,
            archive_extension="zip",
            version="test-version",
        ),
    )

    with TestClient(app) as client:
        yield client

    reset_container()


@pytest.fixture
def add_symlink_entry() -> Callable[[Path, str, str], None]:
    """Helper appending a symlink entry to an archive."""
    return _add_symlink_entry

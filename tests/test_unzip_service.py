"""Tests for UnzipService path handling and result selection."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from zipserve.exceptions import (
    ArchiveNotFoundError,
    ArchiveReadError,
    EntryNotFoundError,
    UnsupportedEntryError,
    ValidationError,
)
from zipserve.models.directory_listing import DirectoryListing
from zipserve.services.unzip import FileTarget, UnzipService


class TestOpenPath:
    """Test resolution of request paths to files and listings."""

    @pytest.mark.asyncio
    async def test_file_entry(self, unzip_service: UnzipService, run_zip: Path) -> None:
        result = await unzip_service.open_path("run.zip/logs/out.txt")

        assert isinstance(result, FileTarget)
        assert result.size == 10
        assert result.media_type == "text/plain; charset=utf-8"
        assert result.location.archive_file == run_zip
        assert result.location.entry_path == "logs/out.txt"

    @pytest.mark.asyncio
    async def test_archive_root_listing(self, unzip_service: UnzipService, run_zip: Path) -> None:
        result = await unzip_service.open_path("run.zip")

        assert isinstance(result, DirectoryListing)
        assert [c.name for c in result.breadcrumbs] == ["run.zip"]
        assert [(c.name, c.path, c.is_directory) for c in result.children] == [
            ("logs", "run.zip/logs", True),
        ]

    @pytest.mark.asyncio
    async def test_implicit_directory_listing(self, unzip_service: UnzipService, run_zip: Path) -> None:
        result = await unzip_service.open_path("run.zip/logs")

        assert isinstance(result, DirectoryListing)
        assert [(c.name, c.size) for c in result.children] == [("out.txt", "10 B")]

    @pytest.mark.asyncio
    async def test_trailing_slash_is_ignored(self, unzip_service: UnzipService, run_zip: Path) -> None:
        assert await unzip_service.open_path("run.zip/logs/") == await unzip_service.open_path(
            "run.zip/logs",
        )

    @pytest.mark.asyncio
    async def test_repeated_requests_are_identical(
        self,
        unzip_service: UnzipService,
        run_zip: Path,
    ) -> None:
        first = await unzip_service.open_path("run.zip/logs/out.txt")
        second = await unzip_service.open_path("run.zip/logs/out.txt")

        assert first == second

    @pytest.mark.asyncio
    async def test_traversal_is_validation_error(self, unzip_service: UnzipService) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await unzip_service.open_path("../etc/passwd")

        assert exc_info.value.context["reason"] == "invalid_path"
        assert exc_info.value.context["path"] == "../etc/passwd"

    @pytest.mark.asyncio
    async def test_empty_path_is_validation_error(self, unzip_service: UnzipService) -> None:
        with pytest.raises(ValidationError):
            await unzip_service.open_path("")

    @pytest.mark.asyncio
    async def test_missing_archive(self, unzip_service: UnzipService) -> None:
        with pytest.raises(ArchiveNotFoundError):
            await unzip_service.open_path("missing.zip/out.txt")

    @pytest.mark.asyncio
    async def test_plain_file_is_not_an_archive(
        self,
        unzip_service: UnzipService,
        results_dir: Path,
    ) -> None:
        (results_dir / "notes.txt").write_text("hello")

        with pytest.raises(ArchiveNotFoundError):
            await unzip_service.open_path("notes.txt")

    @pytest.mark.asyncio
    async def test_missing_entry(self, unzip_service: UnzipService, run_zip: Path) -> None:
        with pytest.raises(EntryNotFoundError) as exc_info:
            await unzip_service.open_path("run.zip/logs/missing.txt")

        assert exc_info.value.context["entry_path"] == "logs/missing.txt"

    @pytest.mark.asyncio
    async def test_unsupported_entry(
        self,
        unzip_service: UnzipService,
        run_zip: Path,
        add_symlink_entry,
    ) -> None:
        add_symlink_entry(run_zip, "logs/latest", "out.txt")

        with pytest.raises(UnsupportedEntryError):
            await unzip_service.open_path("run.zip/logs/latest")

    @pytest.mark.asyncio
    async def test_corrupt_archive(self, unzip_service: UnzipService, results_dir: Path) -> None:
        (results_dir / "broken.zip").write_bytes(b"garbage")

        with pytest.raises(ArchiveReadError):
            await unzip_service.open_path("broken.zip")


class TestIterFileContent:
    """Test streaming through the service."""

    @pytest.mark.asyncio
    async def test_streams_located_file(self, unzip_service: UnzipService, run_zip: Path) -> None:
        target = await unzip_service.open_path("run.zip/logs/out.txt")
        assert isinstance(target, FileTarget)

        assert b"".join(unzip_service.iter_file_content(target)) == b"0123456789"


class TestConcurrency:
    """Test independent handling of concurrent requests."""

    @pytest.mark.asyncio
    async def test_concurrent_requests_for_same_archive(
        self,
        unzip_service: UnzipService,
        run_zip: Path,
    ) -> None:
        """Verify each request opens its own archive handle."""
        results = await asyncio.gather(
            *(unzip_service.open_path("run.zip/logs/out.txt") for _ in range(8)),
            *(unzip_service.open_path("run.zip/logs") for _ in range(8)),
        )

        assert all(isinstance(r, FileTarget) for r in results[:8])
        assert all(isinstance(r, DirectoryListing) for r in results[8:])
        assert len({r for r in results[:8]}) == 1

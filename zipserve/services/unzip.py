from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from zipserve.exceptions import EntryNotFoundError, ValidationError
from zipserve.models.directory_listing import DirectoryListing
from zipserve.services.archive_locator import ArchiveLocation, locate_archive, normalize_extension
from zipserve.services.directory_listing import build_directory_listing
from zipserve.utils.path_validation import PathValidationError, resolve_requested_path

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from zipserve.services.archive_reader import ArchiveChild, ArchiveEntryReader
    from zipserve.services.content_streamer import ContentStreamer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileTarget:
    """A file entry ready to be streamed."""

    location: ArchiveLocation
    size: int
    media_type: str | None


UnzipResult = FileTarget | DirectoryListing


class UnzipService:
    """Serves files and directory listings from inside archives in the results directory."""

    def __init__(
        self,
        results_directory: Path,
        archive_extension: str,
        reader: ArchiveEntryReader,
        content_streamer: ContentStreamer,
    ) -> None:
        """
        Initialize unzip service.

        Args:
            results_directory: Absolute directory holding the archives
            archive_extension: Extension that marks a file as an archive (e.g. "zip")
            reader: ArchiveEntryReader for entry lookups
            content_streamer: ContentStreamer for file entries
        """
        self.results_directory = results_directory
        self.archive_extension = normalize_extension(archive_extension)
        self.reader = reader
        self.content_streamer = content_streamer

    async def open_path(self, requested_path: str) -> UnzipResult:
        """
        Resolve a request path to a file entry or a directory listing.

        Args:
            requested_path: Relative path from the URL (e.g. "run.zip/logs/out.txt")

        Returns:
            FileTarget for file entries, DirectoryListing for directories

        Raises:
            ValidationError: Path invalid or escapes the results directory
            ArchiveNotFoundError: First segment is not a servable archive
            EntryNotFoundError: Nothing inside the archive matches
            ArchiveReadError: Archive cannot be opened or is corrupt
            UnsupportedEntryError: Entry is neither a file nor a directory
        """
        return await asyncio.to_thread(self.open_path_sync, requested_path)

    def open_path_sync(self, requested_path: str) -> UnzipResult:
        """Synchronous path lookup (runs in thread)."""
        location = self.locate(requested_path)
        logger.debug(
            "Located archive for request",
            extra={
                "path": requested_path,
                "archive_file": str(location.archive_file),
                "entry_path": location.entry_path,
            },
        )

        def on_file(_stream: IO[bytes], size: int) -> UnzipResult:
            return FileTarget(
                location=location,
                size=size,
                media_type=self.content_streamer.guess_media_type(location.entry_path),
            )

        def on_directory(children: tuple[ArchiveChild, ...]) -> UnzipResult:
            return build_directory_listing(location.archive_name, location.entry_path, children)

        def on_absent() -> UnzipResult:
            msg = "Entry not found"
            raise EntryNotFoundError(
                msg,
                context={
                    "archive_file": str(location.archive_file),
                    "entry_path": location.entry_path,
                },
            )

        return self.reader.find_entry(
            location.archive_file,
            location.entry_path,
            on_file=on_file,
            on_directory=on_directory,
            on_absent=on_absent,
        )

    def locate(self, requested_path: str) -> ArchiveLocation:
        """Validate the request path and find the archive it names."""
        try:
            resolved = resolve_requested_path(self.results_directory, requested_path)
        except PathValidationError as exc:
            msg = "Invalid path"
            raise ValidationError(
                msg,
                context={
                    "path": requested_path,
                    "reason": "invalid_path",
                    "detail": str(exc),
                },
            ) from exc

        return locate_archive(self.results_directory, resolved, self.archive_extension)

    def iter_file_content(self, target: FileTarget) -> Iterator[bytes]:
        """Stream a previously located file entry."""
        return self.content_streamer.iter_content(
            target.location.archive_file,
            target.location.entry_path,
        )

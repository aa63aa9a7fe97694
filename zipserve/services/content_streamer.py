"""Stream file entries out of archives with a guessed content type."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from zipserve.exceptions import ArchiveReadError
from zipserve.services.archive_reader import ARCHIVE_READ_ERRORS, ArchiveEntryReader, EntryKind

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

# Extension -> media type. Unknown extensions get no Content-Type at all.
DEFAULT_MEDIA_TYPES: dict[str, str] = {
    "bmp": "image/bmp",
    "class": "application/java",
    "css": "text/css",
    "csv": "text/csv",
    "gif": "image/gif",
    "gz": "application/gzip",
    "htm": "text/html",
    "html": "text/html",
    "ico": "image/x-icon",
    "jar": "application/java-archive",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "js": "application/javascript",
    "json": "application/json",
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "pdf": "application/pdf",
    "png": "image/png",
    "svg": "image/svg+xml",
    "tar": "application/x-tar",
    "tgz": "application/x-gzip",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "txt": "text/plain",
    "wav": "audio/x-wav",
    "webp": "image/webp",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "xml": "application/xml",
    "yaml": "application/yaml",
    "yml": "application/yaml",
    "zip": "application/zip",
}

# Media types that are text even though they are not text/*
_TEXT_LIKE_TYPES = {
    "application/javascript",
    "application/json",
    "application/xml",
    "application/yaml",
    "image/svg+xml",
}


def file_extension(entry_path: str) -> str:
    """Extension of the last path segment: text after its final dot, else ""."""
    file_name = entry_path.rsplit("/", 1)[-1]
    _, dot, extension = file_name.rpartition(".")
    return extension if dot else ""


class ContentStreamer:
    """Streams archive file entries in bounded-size chunks.

    Media types come from DEFAULT_MEDIA_TYPES plus configured overrides rather
    than ``mimetypes.guess_type``: the mimetypes database is read from the host
    (/etc/mime.types and friends), so the same archive would be served with
    different Content-Types on different machines. An unknown extension gets
    no Content-Type at all instead of a guessed octet-stream.
    """

    def __init__(
        self,
        reader: ArchiveEntryReader,
        extra_media_types: Mapping[str, str] | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize content streamer.

        Args:
            reader: ArchiveEntryReader used to reopen archives for streaming
            extra_media_types: Additional extension -> media type mappings
                (override the built-in table)
            chunk_size: Bytes read per chunk
        """
        if chunk_size < 1:
            msg = "Chunk size must be positive"
            raise ValueError(msg)

        self.reader = reader
        self.chunk_size = chunk_size
        self.media_types = dict(DEFAULT_MEDIA_TYPES)
        for extension, media_type in (extra_media_types or {}).items():
            self.media_types[extension.lower().removeprefix(".")] = media_type

    def guess_media_type(self, entry_path: str) -> str | None:
        """Guess a Content-Type for an entry, or None when there is no good guess."""
        extension = file_extension(entry_path).lower()
        if not extension:
            return None

        media_type = self.media_types.get(extension)
        if media_type is None:
            return None

        if "charset=" in media_type:
            return media_type

        if media_type.startswith("text/") or media_type in _TEXT_LIKE_TYPES:
            return f"{media_type}; charset=utf-8"

        return media_type

    def iter_content(self, archive_file: Path, entry_path: str) -> Iterator[bytes]:
        """
        Yield the bytes of a file entry chunk by chunk.

        The archive is opened when iteration starts and closed when the
        generator finishes or is closed (e.g. on client disconnect). Errors
        here happen after response headers went out, so they are logged and
        re-raised to abort the connection.

        Raises:
            ArchiveReadError: Archive or entry could not be read
        """
        context = {"archive_file": str(archive_file), "entry_path": entry_path}
        bytes_sent = 0

        try:
            with self.reader.open_entry(archive_file, entry_path) as entry:
                if entry.kind is not EntryKind.FILE or entry.stream is None:
                    msg = "Archive entry is no longer a file"
                    raise ArchiveReadError(msg, context={**context, "kind": entry.kind.value})

                while True:
                    try:
                        chunk = entry.stream.read(self.chunk_size)
                    except ARCHIVE_READ_ERRORS as e:
                        msg = "Failed to read archive entry"
                        raise ArchiveReadError(
                            msg,
                            context={
                                **context,
                                "error": str(e),
                                "error_type": type(e).__name__,
                            },
                        ) from e

                    if not chunk:
                        break

                    bytes_sent += len(chunk)
                    yield chunk
        except ArchiveReadError as e:
            logger.error(
                "Streaming archive entry failed after response started",
                extra={
                    **e.context,
                    "bytes_sent": bytes_sent,
                },
            )
            raise

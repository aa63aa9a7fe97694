"""Look up and classify entries inside zip archives."""

from __future__ import annotations

import logging
import stat
import zipfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, TYPE_CHECKING, TypeVar

from zipserve.exceptions import ArchiveReadError, UnsupportedEntryError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Everything zipfile and the decompressors raise for damaged or unreadable archives
ARCHIVE_READ_ERRORS: tuple[type[BaseException], ...] = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    OSError,
)

_ENCRYPTED_FLAG = 0x1


class EntryKind(str, Enum):
    """Classification of a path inside an archive."""

    FILE = "file"
    DIRECTORY = "directory"
    ABSENT = "absent"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ArchiveChild:
    """Immediate child of a directory inside an archive."""

    name: str
    path: str
    kind: EntryKind
    size: int | None = None

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class ArchiveEntry:
    """A classified entry.

    ``stream`` is only set for files, ``children`` only for directories.
    Both are valid only inside the ``open_entry`` block that produced them.
    """

    kind: EntryKind
    path: str
    size: int | None = None
    stream: IO[bytes] | None = None
    children: tuple[ArchiveChild, ...] = field(default=())


def _classify_info(info: zipfile.ZipInfo) -> EntryKind:
    """Classify an existing ZipInfo from its name, unix mode and flags."""
    mode = info.external_attr >> 16

    if info.is_dir() or stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY

    # Many writers (zipfile.writestr included) store permission bits with no
    # file type; only an explicit non-regular type is unsupported
    file_type = stat.S_IFMT(mode)
    if file_type and not stat.S_ISREG(mode):
        return EntryKind.UNSUPPORTED

    if info.flag_bits & _ENCRYPTED_FLAG:
        return EntryKind.UNSUPPORTED

    return EntryKind.FILE


def _is_safe_name(name: str) -> bool:
    return name not in ("", ".", "..")


class ArchiveEntryReader:
    """Reader that opens an archive per call and always closes it."""

    @contextmanager
    def open_archive(self, archive_file: Path) -> Iterator[zipfile.ZipFile]:
        """
        Open an archive read-only for the duration of the block.

        Raises:
            ArchiveReadError: The archive cannot be opened or is corrupt
        """
        try:
            archive = zipfile.ZipFile(archive_file, "r")
        except ARCHIVE_READ_ERRORS as e:
            msg = "Failed to open archive"
            raise ArchiveReadError(
                msg,
                context={
                    "archive_file": str(archive_file),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            ) from e

        with archive:
            yield archive

    def lookup(self, archive: zipfile.ZipFile, entry_path: str) -> ArchiveEntry:
        """
        Classify ``entry_path`` inside an open archive without reading content.

        The empty path is the implicit archive root and is always a directory.
        A path with no entry of its own is still a directory when other
        entries live beneath it.
        """
        if entry_path == "":
            return ArchiveEntry(
                kind=EntryKind.DIRECTORY,
                path=entry_path,
                children=self.list_children(archive, entry_path),
            )

        info = self._get_info(archive, entry_path)
        if info is None:
            info = self._get_info(archive, f"{entry_path}/")

        if info is not None:
            kind = _classify_info(info)
            if kind is EntryKind.DIRECTORY:
                return ArchiveEntry(
                    kind=kind,
                    path=entry_path,
                    children=self.list_children(archive, entry_path),
                )
            size = info.file_size if kind is EntryKind.FILE else None
            return ArchiveEntry(kind=kind, path=entry_path, size=size)

        prefix = f"{entry_path}/"
        if any(name.startswith(prefix) for name in archive.namelist()):
            return ArchiveEntry(
                kind=EntryKind.DIRECTORY,
                path=entry_path,
                children=self.list_children(archive, entry_path),
            )

        return ArchiveEntry(kind=EntryKind.ABSENT, path=entry_path)

    def list_children(self, archive: zipfile.ZipFile, entry_path: str) -> tuple[ArchiveChild, ...]:
        """
        Collect the immediate children of a directory.

        Children are entries whose name, with the directory prefix stripped,
        contains no further '/'. Deeper entries contribute their first
        segment as an (implicit) directory child.
        """
        prefix = f"{entry_path}/" if entry_path else ""
        children: dict[str, ArchiveChild] = {}

        for info in archive.infolist():
            name = info.filename
            if not name.startswith(prefix) or name == prefix:
                continue

            head, separator, tail = name[len(prefix):].partition("/")
            if not _is_safe_name(head):
                logger.debug(
                    "Skipping archive entry with unusable name",
                    extra={
                        "archive_file": archive.filename,
                        "entry_name": name,
                    },
                )
                continue

            child_path = f"{prefix}{head}"

            if separator:
                # Either an explicit "head/" entry or something nested below it
                children[head] = ArchiveChild(
                    name=head,
                    path=child_path,
                    kind=EntryKind.DIRECTORY,
                )
                continue

            if head in children and children[head].is_directory:
                continue

            kind = _classify_info(info)
            children[head] = ArchiveChild(
                name=head,
                path=child_path,
                kind=kind,
                size=info.file_size if kind is EntryKind.FILE else None,
            )

        return tuple(children.values())

    @contextmanager
    def open_entry(self, archive_file: Path, entry_path: str) -> Iterator[ArchiveEntry]:
        """
        Open an archive, classify ``entry_path`` and yield the entry.

        For files the yielded entry carries an open byte stream. The stream
        and the archive are closed when the block exits, whether or not it
        raised.

        Raises:
            ArchiveReadError: Archive cannot be opened, or the entry cannot be decoded
        """
        with ExitStack() as stack:
            archive = stack.enter_context(self.open_archive(archive_file))

            try:
                entry = self.lookup(archive, entry_path)
                if entry.kind is EntryKind.FILE:
                    stream = stack.enter_context(archive.open(entry.path, "r"))
                    entry = ArchiveEntry(
                        kind=entry.kind,
                        path=entry.path,
                        size=entry.size,
                        stream=stream,
                    )
            except ARCHIVE_READ_ERRORS as e:
                msg = "Failed to read archive entry"
                raise ArchiveReadError(
                    msg,
                    context={
                        "archive_file": str(archive_file),
                        "entry_path": entry_path,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                ) from e

            yield entry

    def find_entry(
        self,
        archive_file: Path,
        entry_path: str,
        on_file: Callable[[IO[bytes], int], T],
        on_directory: Callable[[tuple[ArchiveChild, ...]], T],
        on_absent: Callable[[], T],
    ) -> T:
        """
        Locate an entry and hand it to the callback matching its kind.

        Args:
            archive_file: Archive on disk
            entry_path: '/'-separated path inside the archive ("" for its root)
            on_file: Called with the entry's byte stream and declared size
            on_directory: Called with the directory's immediate children
            on_absent: Called when nothing in the archive matches

        Returns:
            Whatever the invoked callback returns

        Raises:
            ArchiveReadError: Archive cannot be opened or is corrupt
            UnsupportedEntryError: Entry is neither a file nor a directory
        """
        with self.open_entry(archive_file, entry_path) as entry:
            if entry.kind is EntryKind.FILE:
                return on_file(entry.stream, entry.size)  # type: ignore[arg-type]

            if entry.kind is EntryKind.DIRECTORY:
                return on_directory(entry.children)

            if entry.kind is EntryKind.ABSENT:
                return on_absent()

            logger.warning(
                "Cannot unzip an archive entry that is neither a file nor a directory",
                extra={
                    "archive_file": str(archive_file),
                    "entry_path": entry_path,
                },
            )
            msg = "Archive entry is neither a file nor a directory"
            raise UnsupportedEntryError(
                msg,
                context={
                    "archive_file": str(archive_file),
                    "entry_path": entry_path,
                },
            )

    def _get_info(self, archive: zipfile.ZipFile, name: str) -> zipfile.ZipInfo | None:
        try:
            return archive.getinfo(name)
        except KeyError:
            return None

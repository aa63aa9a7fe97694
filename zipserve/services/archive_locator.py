"""Locate the archive named by the first segment of a resolved path."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from zipserve.exceptions import ArchiveNotFoundError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

FOLLOW_SYMLINKS = False  # Security policy - never configurable


@dataclass(frozen=True)
class ArchiveLocation:
    """An archive file plus the entry path requested inside it."""

    archive_file: Path
    entry_path: str

    @property
    def archive_name(self) -> str:
        return self.archive_file.name


def normalize_extension(extension: str) -> str:
    """Strip a leading dot so ".zip" and "zip" configure the same thing."""
    return extension.strip().removeprefix(".")


def locate_archive(root: Path, resolved_path: Path, archive_extension: str) -> ArchiveLocation:
    """
    Split a resolved path into archive file and internal entry path.

    Only regular files directly under ``root`` whose extension equals
    ``archive_extension`` are accepted. Anything else under the results
    directory is never exposed through this path.

    Args:
        root: Results directory
        resolved_path: Output of resolve_requested_path (strictly below root)
        archive_extension: Recognized archive extension, with or without dot

    Returns:
        ArchiveLocation for the request

    Raises:
        ArchiveNotFoundError: Archive missing, not a regular file, or wrong extension
    """
    relative = resolved_path.relative_to(root)
    archive_name, *entry_parts = relative.parts
    archive_file = root / archive_name

    context = {"archive_file": str(archive_file)}

    if archive_file.suffix.removeprefix(".") != normalize_extension(archive_extension):
        msg = "Not an archive"
        raise ArchiveNotFoundError(msg, context={**context, "reason": "wrong_extension"})

    try:
        is_symlink = archive_file.is_symlink()
        is_file = archive_file.is_file()
    except OSError as e:
        # e.g. ENAMETOOLONG or EACCES; pathlib only swallows "missing" errnos
        msg = "Archive not found"
        raise ArchiveNotFoundError(
            msg,
            context={
                **context,
                "reason": "stat_failed",
                "error": str(e),
                "error_type": type(e).__name__,
            },
        ) from e

    if not FOLLOW_SYMLINKS and is_symlink:
        msg = "Symlinked archives are not served"
        raise ArchiveNotFoundError(msg, context={**context, "reason": "symlink_not_allowed"})

    if not is_file:
        msg = "Archive not found"
        raise ArchiveNotFoundError(msg, context={**context, "reason": "not_a_file"})

    return ArchiveLocation(archive_file=archive_file, entry_path="/".join(entry_parts))

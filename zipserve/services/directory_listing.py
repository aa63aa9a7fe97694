"""Build directory listings (breadcrumbs and children) for archive directories."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from zipserve.models.directory_listing import BreadcrumbSegment, ChildEntry, DirectoryListing

if TYPE_CHECKING:
    from zipserve.services.archive_reader import ArchiveChild

SI_UNIT = 1000
SI_PREFIXES = "kMGTPE"


def format_file_size(size: int) -> str:
    """
    Format a byte count with SI (1000-based) units and one decimal digit.

    Examples:
        10 -> "10 B", 1000 -> "1.0 kB", 1_536_000 -> "1.5 MB"
    """
    if size < 0:
        msg = "Size must be non-negative"
        raise ValueError(msg)

    if size < SI_UNIT:
        return f"{size} B"

    exponent = 0
    while size >= SI_UNIT ** (exponent + 1) and exponent < len(SI_PREFIXES):
        exponent += 1

    scaled = (Decimal(size) / Decimal(SI_UNIT**exponent)).quantize(
        Decimal("0.1"),
        rounding=ROUND_HALF_UP,
    )
    return f"{scaled} {SI_PREFIXES[exponent - 1]}B"


def child_sort_key(child: ChildEntry) -> tuple[bool, str, str]:
    """Directories first, then case-insensitive name, then exact name."""
    return (not child.is_directory, child.name.casefold(), child.name)


def build_breadcrumbs(archive_name: str, entry_path: str) -> list[BreadcrumbSegment]:
    """One segment per component from the archive down to the viewed directory."""
    segments = [archive_name, *(part for part in entry_path.split("/") if part)]

    return [
        BreadcrumbSegment(
            name=segments[index - 1],
            path="/".join(segments[:index]),
            is_directory=True,
            is_selected=index == len(segments),
        )
        for index in range(1, len(segments) + 1)
    ]


def build_directory_listing(
    archive_name: str,
    entry_path: str,
    children: Iterable[ArchiveChild],
) -> DirectoryListing:
    """
    Build the listing for a directory inside an archive.

    Args:
        archive_name: File name of the archive (first breadcrumb)
        entry_path: '/'-separated directory path inside the archive
        children: Immediate children from ArchiveEntryReader

    Returns:
        DirectoryListing with sorted children
    """
    entries = [
        ChildEntry(
            name=child.name,
            path=f"{archive_name}/{child.path}",
            size=format_file_size(child.size) if child.size is not None else None,
            is_directory=child.is_directory,
        )
        for child in children
    ]
    entries.sort(key=child_sort_key)

    return DirectoryListing(
        breadcrumbs=tuple(build_breadcrumbs(archive_name, entry_path)),
        children=tuple(entries),
    )

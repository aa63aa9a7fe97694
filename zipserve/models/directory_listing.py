"""Models for directory listings of archive contents."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BreadcrumbSegment(BaseModel):
    """One ancestor (or the current) component of the viewed path."""

    name: str = Field(..., description="Display name of the path component")
    path: str = Field(..., description="Archive name and internal path joined by '/'")
    is_directory: bool = Field(True, alias="isDirectory", description="Whether the segment is a directory")
    is_selected: bool = Field(
        False,
        alias="isSelected",
        description="Whether this is the currently viewed segment",
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ChildEntry(BaseModel):
    """Immediate child of a listed directory."""

    name: str = Field(..., description="Display name")
    path: str = Field(..., description="Archive name and internal path joined by '/'")
    size: str | None = Field(None, description="Human-readable size (files only)")
    is_directory: bool = Field(..., alias="isDirectory", description="Whether the child is a directory")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class DirectoryListing(BaseModel):
    """Breadcrumbs plus sorted children of a directory inside an archive."""

    breadcrumbs: tuple[BreadcrumbSegment, ...] = Field(..., description="Root-to-leaf trail")
    children: tuple[ChildEntry, ...] = Field(..., description="Directories first, then files")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

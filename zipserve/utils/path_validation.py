"""Path validation utilities to prevent path traversal out of the results directory."""

from __future__ import annotations

import os
from pathlib import Path


class PathValidationError(ValueError):
    """Raised when path validation fails."""


def resolve_requested_path(root: Path, requested_path: str) -> Path:
    """Resolve an untrusted request path against the results directory.

    Pure path algebra: nothing here touches the filesystem, so symlinks are
    not followed and the result may name something that does not exist.

    A path is accepted only if joining it to ``root`` needs no further
    normalization (no ``..`` segments survive) and the joined path lies
    strictly below ``root``, compared component by component.

    Args:
        root: Absolute results directory
        requested_path: Relative path taken from the request URL

    Returns:
        Joined absolute path below ``root``

    Raises:
        PathValidationError: If the path is empty, unparsable, or escapes root
    """
    if not isinstance(requested_path, str):
        msg = "Path must be a string"
        raise PathValidationError(msg)

    if not requested_path:
        msg = "Path cannot be empty"
        raise PathValidationError(msg)

    if "\x00" in requested_path:
        msg = "Path contains null bytes"
        raise PathValidationError(msg)

    try:
        candidate = root / requested_path
        normalized = Path(os.path.normpath(candidate))
    except (TypeError, ValueError) as e:
        msg = f"Cannot parse path: {e}"
        raise PathValidationError(msg) from e

    if candidate != normalized:
        msg = "Path is not normalized (contains '..')"
        raise PathValidationError(msg)

    # is_relative_to compares parts, so /results-evil never matches /results
    if not candidate.is_relative_to(root):
        msg = f"Path {candidate} is outside results directory {root}"
        raise PathValidationError(msg)

    if candidate == root:
        msg = "Path names the results directory itself"
        raise PathValidationError(msg)

    return candidate

"""
Custom exception classes with context for zipserve.

All exceptions inherit from ZipServeError base class and support
attaching contextual information for better debugging and logging.
"""

from __future__ import annotations


class ZipServeError(Exception):
    """
    Base exception for zipserve.

    All custom exceptions should inherit from this class to enable
    consistent error handling across the application.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary with additional context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, object] | None = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dictionary with contextual information
                    (archive file, entry path, error details, etc.)
        """
        super().__init__(message)
        self.context = context or {}


class ValidationError(ZipServeError):
    """
    Request path validation failed.

    Raised when a requested path cannot be parsed or resolves outside
    the results directory. Clients only ever see a not-found response.

    Example:
        raise ValidationError(
            "Invalid path",
            context={
                "path": "../etc/passwd",
                "reason": "invalid_path",
            }
        )
    """


class ArchiveNotFoundError(ZipServeError):
    """
    The first path segment does not name a servable archive.

    Raised when the archive file is missing, is not a regular file,
    or does not carry the configured archive extension.

    Example:
        raise ArchiveNotFoundError(
            "Archive not found",
            context={
                "archive_file": "/data/notazip.txt",
                "reason": "wrong_extension",
            }
        )
    """


class EntryNotFoundError(ZipServeError):
    """
    No entry inside the archive matches the requested entry path.

    Example:
        raise EntryNotFoundError(
            "Entry not found",
            context={
                "archive_file": "/data/run.zip",
                "entry_path": "missing",
            }
        )
    """


class ArchiveReadError(ZipServeError):
    """
    The archive could not be opened or read.

    Raised for corrupt archives, unsupported compression methods and
    I/O failures, including failures in the middle of a streaming copy.

    Example:
        raise ArchiveReadError(
            "Failed to open archive",
            context={
                "archive_file": "/data/run.zip",
                "error": "File is not a zip file",
            }
        )
    """


class UnsupportedEntryError(ZipServeError):
    """
    An archive entry exists but is neither a regular file nor a directory.

    Symlinks, device-special entries and encrypted entries land here.
    Always reported as a server error.

    Example:
        raise UnsupportedEntryError(
            "Archive entry is neither a file nor a directory",
            context={
                "archive_file": "/data/run.zip",
                "entry_path": "logs/latest",
            }
        )
    """


class ConfigurationError(ZipServeError):
    """
    Configuration error.

    Raised when configuration loading, validation, or parsing fails.

    Example:
        raise ConfigurationError(
            "Missing required configuration key",
            context={
                "key": "results.directory",
                "config_file": "/app/config.yaml"
            }
        )
    """

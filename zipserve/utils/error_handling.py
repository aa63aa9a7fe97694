"""
Error handling utilities for zipserve.

Provides helpers for consistent error logging without leaking
details into client responses.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def log_errors(operation_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log errors with context.

    Automatically logs exceptions with structured context including
    operation name, function name, and error details. The exception
    is re-raised after logging.

    Args:
        operation_name: Name of the operation for logging context

    Returns:
        Decorated function that logs errors before re-raising

    Example:
        @log_errors("health_check")
        async def check_results_directory() -> ServiceHealth:
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.exception(
                    f"Error in {operation_name}",
                    extra={
                        "operation": operation_name,
                        "error_type": type(e).__name__,
                        "function": func.__name__,
                    },
                )
                raise

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.exception(
                    f"Error in {operation_name}",
                    extra={
                        "operation": operation_name,
                        "error_type": type(e).__name__,
                        "function": func.__name__,
                    },
                )
                raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper  # type: ignore[return-value]

    return decorator


def format_exception_for_log(e: Exception) -> dict[str, object]:
    """
    Format exception as structured logging context.

    Extracts the error type, message and any attached context from
    custom exceptions. The result is meant for ``extra=`` on log calls;
    it is never sent to clients.

    Args:
        e: Exception to format

    Returns:
        Dictionary with error details suitable for structured logs

    Example:
        try:
            do_something()
        except ArchiveReadError as e:
            logger.error("Archive unreadable", extra=format_exception_for_log(e))
    """
    from zipserve.exceptions import ZipServeError

    error_dict: dict[str, object] = {
        "error_type": type(e).__name__,
        "error": str(e),
    }

    # Context keys are flattened so log processors can index them
    if isinstance(e, ZipServeError) and e.context:
        for key, value in e.context.items():
            error_dict.setdefault(key, value)

    return error_dict

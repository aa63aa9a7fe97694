"""Structured logging configuration with JSON output."""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter


class RequestIDFilter(logging.Filter):
    """Add request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add request_id field to log record."""
        from zipserve.utils.request_context import get_request_id

        record.request_id = get_request_id() or "no-request-id"
        return True


class HealthCheckFilter(logging.Filter):
    """Suppress access logs for successful health check endpoints.

    Only filters out 200 OK responses - errors (4xx, 5xx) are still logged.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out successful health check endpoint logs."""
        message = record.getMessage()

        health_paths = [
            "GET /health ",
            "GET /health/ready ",
        ]

        return all(not (path in message and '" 200' in message) for path in health_paths)


def build_json_formatter() -> JsonFormatter:
    """JSON formatter emitting timestamp, level, logger name, message and request_id."""
    return JsonFormatter(
        fmt="%(levelname)s %(name)s %(message)s %(request_id)s",
        rename_fields={"levelname": "level"},
        timestamp=True,
    )


def configure_json_logging(
    log_level: str = "INFO",
    use_json: bool = True,
) -> None:
    """Configure application logging with optional JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Whether to use JSON output (True) or text output (False)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(getattr(logging, log_level.upper()))
    stream_handler.addFilter(RequestIDFilter())

    if use_json:
        stream_handler.setFormatter(build_json_formatter())
    else:
        text_formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        stream_handler.setFormatter(text_formatter)

    root_logger.addHandler(stream_handler)

    # Suppress noisy loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.addFilter(HealthCheckFilter())

"""
Request ID middleware for the unzip server.

Every request gets an ID that is stored in a ContextVar (so archive work in
worker threads logs it too) and echoed back in the X-Request-ID header.
"""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from zipserve.utils.request_context import (
    clear_request_id,
    generate_request_id,
    set_request_id,
)

if TYPE_CHECKING:
    from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client IDs are echoed into headers and logs, so only short token-like values are reused
_CLIENT_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def request_id_from_headers(request: Request) -> str:
    """Reuse a well-formed client request ID, otherwise generate one."""
    client_id = request.headers.get(REQUEST_ID_HEADER, "")
    if _CLIENT_REQUEST_ID.fullmatch(client_id):
        return client_id
    return generate_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign, propagate and log request IDs for archive requests."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        request_id = request_id_from_headers(request)
        set_request_id(request_id)

        # Readiness probes hit /health constantly
        should_log = not request.url.path.startswith("/health")
        started = time.perf_counter()

        if should_log:
            logger.info(
                "Request started",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                },
            )

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            # For streamed archive entries this fires once headers are ready, not at end of body
            if should_log:
                logger.info(
                    "Request completed",
                    extra={
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                )

            return response
        finally:
            clear_request_id()

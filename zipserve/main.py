import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from zipserve.api import health, unzip
from zipserve.config import Settings, get_settings
from zipserve.logging_config import configure_json_logging
from zipserve.middleware.request_id import RequestIDMiddleware
from zipserve.services.archive_reader import ArchiveEntryReader
from zipserve.services.container import init_container, reset_container
from zipserve.services.content_streamer import ContentStreamer
from zipserve.services.health import HealthCheckService
from zipserve.services.unzip import UnzipService
from zipserve.version import get_version

logger = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    """Build the application for the given settings."""
    configure_json_logging(log_level=settings.log_level, use_json=settings.log_json)

    reader = ArchiveEntryReader()
    content_streamer = ContentStreamer(
        reader=reader,
        extra_media_types=settings.extra_media_types,
        chunk_size=settings.stream_chunk_size,
    )
    unzip_service = UnzipService(
        results_directory=settings.results_directory,
        archive_extension=settings.archive_extension,
        reader=reader,
        content_streamer=content_streamer,
    )
    health_service = HealthCheckService(
        results_directory=settings.results_directory,
        archive_extension=settings.archive_extension,
        version=get_version(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application startup and shutdown."""
        logger.info(
            "Starting zipserve",
            extra={
                "results_directory": str(settings.results_directory),
                "archive_extension": settings.archive_extension,
            },
        )

        if not settings.results_directory.is_dir():
            # Keep serving: readiness reports unhealthy until the directory appears
            logger.warning(
                "Results directory is missing",
                extra={"results_directory": str(settings.results_directory)},
            )

        init_container(unzip_service=unzip_service, health_service=health_service)

        yield

        logger.info("zipserve shutting down")
        reset_container()

    app = FastAPI(
        title="zipserve",
        description="Browse files inside result archives",
        version=get_version(),
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(Exception)
    async def log_uncaught_exception(request: Request, exc: Exception) -> JSONResponse:
        """Make sure every uncaught exception is logged with its request."""
        logger.error(
            "Uncaught exception from HTTP handler",
            extra={
                "method": request.method,
                "url": str(request.url),
                "error_type": type(exc).__name__,
            },
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )

    app.include_router(health.router)
    app.include_router(unzip.router)

    return app


app = create_app(get_settings())

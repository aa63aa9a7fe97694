"""Read-only endpoints serving files and listings from inside result archives."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from zipserve.dependencies import get_unzip_service
from zipserve.exceptions import (
    ArchiveNotFoundError,
    ArchiveReadError,
    EntryNotFoundError,
    UnsupportedEntryError,
    ValidationError,
)
from zipserve.services.unzip import FileTarget, UnzipService
from zipserve.utils.error_handling import format_exception_for_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/unzip", tags=["unzip"])

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

DIRECTORY_LISTING_TEMPLATE = "directory-listing.html"

# Sent with every response from this router, errors included
UNZIP_RESPONSE_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

ListingFormat = Literal["html", "json"]


def not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Not Found",
        headers=UNZIP_RESPONSE_HEADERS,
    )


def server_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
        headers=UNZIP_RESPONSE_HEADERS,
    )


@router.get("/{request_path:path}")
async def unzip_results(
    request: Request,
    request_path: str,
    listing_format: Annotated[
        ListingFormat,
        Query(alias="format", description="Directory listing format"),
    ] = "html",
    unzip_service: UnzipService = Depends(get_unzip_service),
) -> Response:
    """
    Serve a file or a directory listing from inside an archive.

    ``request_path`` is ``<archive>/<path inside archive>``; the archive
    alone lists its root. Files stream with a guessed Content-Type,
    directories render as HTML (or JSON with ``?format=json``).
    """
    try:
        result = await unzip_service.open_path(request_path)
    except ValidationError as exc:
        logger.warning(
            "Rejected unzip request path",
            extra=format_exception_for_log(exc),
        )
        raise not_found() from exc
    except (ArchiveNotFoundError, EntryNotFoundError) as exc:
        logger.info(
            "Unzip target not found",
            extra={"path": request_path, **format_exception_for_log(exc)},
        )
        raise not_found() from exc
    except UnsupportedEntryError as exc:
        logger.error(
            "Unsupported archive entry requested",
            extra={"path": request_path, **format_exception_for_log(exc)},
        )
        raise server_error() from exc
    except ArchiveReadError as exc:
        logger.error(
            "Failed to read archive",
            extra={"path": request_path, **format_exception_for_log(exc)},
        )
        raise server_error() from exc
    except Exception as exc:
        logger.exception(
            "Unexpected error serving archive contents",
            extra={
                "path": request_path,
                "error_type": type(exc).__name__,
            },
        )
        raise server_error() from exc

    if isinstance(result, FileTarget):
        return StreamingResponse(
            unzip_service.iter_file_content(result),
            media_type=result.media_type,
            headers={
                **UNZIP_RESPONSE_HEADERS,
                "Content-Length": str(result.size),
            },
        )

    if listing_format == "json":
        return JSONResponse(
            content=result.model_dump(mode="json", by_alias=True),
            headers=UNZIP_RESPONSE_HEADERS,
        )

    return templates.TemplateResponse(
        request,
        DIRECTORY_LISTING_TEMPLATE,
        {"listing": result},
        headers=UNZIP_RESPONSE_HEADERS,
    )

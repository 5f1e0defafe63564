"""File endpoints -- downloads and metadata for files under the storage root."""

from __future__ import annotations

from pathlib import Path

from babel.core import UnknownLocaleError
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import Response

from src.api.v1.schemas.common import ErrorResponse
from src.api.v1.schemas.files import FileInfoResponse
from src.config import Settings
from src.delivery.models import UNKNOWN_SIZE, TransferRequest
from src.delivery.service import DownloadTransfer
from src.dependencies import (
    get_download_transfer,
    get_files_root,
    get_mime_sniffer,
    get_settings,
)
from src.mime.sniffer import MimeSniffer
from src.utils.exceptions import (
    DeclaredSizeMismatchError,
    FileMissingError,
    TransferFailedError,
)
from src.utils.file_utils import resolve_within
from src.utils.formatting import format_file_size
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Declared before the download route: ``{file_path:path}`` would otherwise
# swallow the ``/info`` suffix.
@router.get(
    "/files/{file_path:path}/info",
    response_model=FileInfoResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown locale"},
        403: {"model": ErrorResponse, "description": "Path outside storage root"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
    summary="Describe a stored file",
    description="Detect the media type of a stored file and format its size for a locale.",
)
def file_info(
    file_path: str,
    locale: str = "",
    root: Path = Depends(get_files_root),
    sniffer: MimeSniffer = Depends(get_mime_sniffer),
    config: Settings = Depends(get_settings),
) -> FileInfoResponse:
    target = resolve_within(root, file_path)
    if not target.is_file():
        raise FileMissingError(file_path)

    size = target.stat().st_size
    locale = locale or config.default_locale
    try:
        size_display = format_file_size(size, locale)
    except (UnknownLocaleError, ValueError):
        raise HTTPException(status_code=400, detail=f"Unknown locale: {locale}")

    return FileInfoResponse(
        path=file_path,
        mime_type=sniffer.detect(target),
        size_bytes=size,
        size_display=size_display,
        locale=locale,
    )


@router.get(
    "/files/{file_path:path}",
    response_class=Response,
    responses={
        400: {"model": ErrorResponse, "description": "Declared size does not match the file"},
        403: {"model": ErrorResponse, "description": "File not readable"},
        404: {"model": ErrorResponse, "description": "File not found"},
        413: {"model": ErrorResponse, "description": "File too large to stream"},
        500: {"model": ErrorResponse, "description": "Transfer failed"},
    },
    summary="Download a stored file",
    description=(
        "Send a file from the storage root as an attachment.  Depending on "
        "configuration the body is offloaded to the web server or streamed "
        "by the application."
    ),
)
def download_file(
    request: Request,
    file_path: str,
    name: str = "",
    mime: str = "",
    size: int = Query(UNKNOWN_SIZE, ge=UNKNOWN_SIZE),
    root: Path = Depends(get_files_root),
    transfer: DownloadTransfer = Depends(get_download_transfer),
    sniffer: MimeSniffer = Depends(get_mime_sniffer),
    config: Settings = Depends(get_settings),
) -> Response:
    target = resolve_within(root, file_path)

    # A size from the query string is only a cross-check, never trusted as
    # Content-Length on its own.
    if size != UNKNOWN_SIZE and target.is_file():
        actual = target.stat().st_size
        if size != actual:
            raise DeclaredSizeMismatchError(file_path, size, actual)

    mime_type = mime
    if not mime_type and config.detect_mime:
        mime_type = sniffer.detect(target)

    outcome = transfer.transfer(
        TransferRequest(
            file_path=str(target),
            display_name=name or target.name,
            mime_type=mime_type,
            declared_size=size,
        ),
        user_agent=request.headers.get("user-agent", ""),
    )
    if not outcome.success:
        raise TransferFailedError(file_path, "could not open file")

    logger.info(
        "file_download",
        file_path=file_path,
        display_name=name or target.name,
        media_type=mime_type,
        strategy=outcome.strategy,
        size=outcome.size,
    )
    return outcome.response

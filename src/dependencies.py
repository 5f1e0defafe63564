"""FastAPI dependency functions for injection into endpoint handlers.

The download service and the mime sniffer are built once during the app
lifespan (see :func:`build_services`) and stored on ``app.state``; the
functions here just look them up.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, Request

from src.config import Settings
from src.delivery.service import DownloadTransfer, build_transporter
from src.mime.sniffer import MimeSniffer
from src.utils.file_utils import ensure_dir
from src.utils.logging import get_logger

logger = get_logger(__name__)


def build_services(app: FastAPI, config: Settings) -> None:
    """Construct the long-lived services for *app* from *config*."""
    transporter = build_transporter(
        config.transfer_mode,
        offload_header=config.offload_header,
        chunk_size=config.chunk_size,
        strict_memory_budget=config.strict_memory_budget,
    )
    app.state.download_transfer = DownloadTransfer(
        transporter,
        memory_limit=config.memory_limit,
        memory_ceiling=config.memory_ceiling,
        legacy_token=config.legacy_user_agent_token,
    )
    app.state.mime_sniffer = MimeSniffer()
    app.state.files_root = ensure_dir(config.files_root).resolve()
    app.state.settings = config

    logger.info(
        "services_initialised",
        transfer_mode=config.transfer_mode,
        files_root=str(app.state.files_root),
        memory_limit=config.memory_limit,
    )


def get_download_transfer(request: Request) -> DownloadTransfer:
    return request.app.state.download_transfer


def get_mime_sniffer(request: Request) -> MimeSniffer:
    return request.app.state.mime_sniffer


def get_files_root(request: Request) -> Path:
    return request.app.state.files_root


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

"""Download orchestration -- validates a file and hands it to a transporter."""

from __future__ import annotations

import os
from pathlib import Path

from src.delivery.budget import MEMORY_CEILING, ResourceBudget
from src.delivery.headers import (
    LEGACY_USER_AGENT_TOKEN,
    content_disposition,
    content_type_headers,
)
from src.delivery.models import TransferOutcome, TransferRequest
from src.delivery.transport import OffloadTransporter, StreamingTransporter, Transporter
from src.utils.exceptions import FileMissingError, FileNotReadableError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class DownloadTransfer:
    """Sends one stored file to an HTTP client as an attachment.

    Typical lifecycle::

        transfer = DownloadTransfer(StreamingTransporter(), memory_limit="128M")
        outcome = transfer.transfer(
            TransferRequest(file_path="/srv/files/ab12", display_name="report.pdf"),
            user_agent=request.headers.get("user-agent", ""),
        )
        return outcome.response
    """

    def __init__(
        self,
        transporter: Transporter,
        memory_limit: str | int = "128M",
        memory_ceiling: int = MEMORY_CEILING,
        legacy_token: str = LEGACY_USER_AGENT_TOKEN,
    ) -> None:
        self.transporter = transporter
        self.memory_limit = memory_limit
        self.memory_ceiling = memory_ceiling
        self.legacy_token = legacy_token
        # Fail at construction on a malformed limit, not on the first request.
        self.new_budget()

    def new_budget(self) -> ResourceBudget:
        return ResourceBudget.from_limit(self.memory_limit, self.memory_ceiling)

    def transfer(
        self,
        request: TransferRequest,
        user_agent: str = "",
        budget: ResourceBudget | None = None,
    ) -> TransferOutcome:
        """Validate *request* and produce the download response.

        Raises
        ------
        FileMissingError
            The path does not exist.
        FileNotReadableError
            The path exists but is not a readable regular file.
        FileTooLargeError
            A strict streaming transporter cannot fit the file in its budget.

        All three are raised before any header is built.  A file that fails
        to open afterwards is reported through ``outcome.success``.
        """
        path = Path(request.file_path)
        self._validate(path)

        if budget is None:
            budget = self.new_budget()

        headers = content_type_headers(request.mime_type)
        headers.append(
            (
                "Content-Disposition",
                content_disposition(
                    request.display_name,
                    self._modified(path),
                    user_agent,
                    self.legacy_token,
                ),
            )
        )

        outcome = self.transporter.send(path, request, headers, budget)
        if not outcome.success:
            logger.error(
                "transfer_failed",
                path=request.file_path,
                display_name=request.display_name,
                strategy=outcome.strategy,
            )
        return outcome

    @staticmethod
    def _validate(path: Path) -> None:
        if not path.exists():
            raise FileMissingError(str(path))
        if not path.is_file() or not os.access(path, os.R_OK):
            raise FileNotReadableError(str(path))

    @staticmethod
    def _modified(path: Path) -> float | None:
        try:
            return path.stat().st_mtime
        except OSError:
            return None


def build_transporter(
    mode: str,
    offload_header: str = "X-Sendfile",
    chunk_size: int = 1024 * 1024,
    strict_memory_budget: bool = False,
) -> Transporter:
    """Pick the transporter for *mode* (``"offload"`` or ``"stream"``)."""
    if mode == "offload":
        return OffloadTransporter(offload_header)
    if mode == "stream":
        return StreamingTransporter(chunk_size, strict_memory_budget)
    raise ValueError(f"Unknown transfer mode: {mode!r}")

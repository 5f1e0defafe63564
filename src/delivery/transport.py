"""Transporters -- the two ways a validated file reaches the client.

:class:`OffloadTransporter` hands the path to the front web server through
a directive header (``X-Sendfile`` for Apache/lighttpd).
:class:`StreamingTransporter` reads the file in-process, in one pass for
small files and chunk by chunk above the chunk threshold.

The transporter is chosen once, at startup, from configuration.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from starlette.responses import Response, StreamingResponse

from src.delivery.budget import ResourceBudget
from src.delivery.headers import Header
from src.delivery.models import UNKNOWN_SIZE, TransferOutcome, TransferRequest
from src.utils.exceptions import FileTooLargeError
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Files above this size are streamed in chunks of this size.
CHUNK_SIZE = 1024 * 1024

OFFLOAD_HEADER = "X-Sendfile"


def apply_headers(response: Response, headers: list[Header]) -> Response:
    """Append *headers* to *response*, keeping duplicates.

    Values are written as UTF-8 so filenames outside Latin-1 survive.
    """
    for name, value in headers:
        response.raw_headers.append((name.lower().encode("latin-1"), value.encode("utf-8")))
    return response


class Transporter(ABC):
    """Delivers the body (or a directive standing in for it)."""

    @abstractmethod
    def send(
        self,
        path: Path,
        request: TransferRequest,
        headers: list[Header],
        budget: ResourceBudget,
    ) -> TransferOutcome:
        ...


class OffloadTransporter(Transporter):
    """Leaves the body to the web server in front of the application."""

    def __init__(self, header: str = OFFLOAD_HEADER) -> None:
        self.header = header

    def send(
        self,
        path: Path,
        request: TransferRequest,
        headers: list[Header],
        budget: ResourceBudget,
    ) -> TransferOutcome:
        response = Response(status_code=200)
        # The web server computes the real length when it swaps in the file.
        del response.headers["content-length"]
        apply_headers(response, [*headers, (self.header, str(path))])

        logger.info("transfer_offloaded", path=str(path), header=self.header)
        return TransferOutcome(
            success=True,
            strategy="offload",
            size=request.declared_size,
            budget=budget,
            response=response,
        )


def iter_file(
    path: Path,
    chunk_size: int = CHUNK_SIZE,
    deadline: float | None = None,
) -> Iterator[bytes]:
    """Yield the file at *path* one chunk at a time.

    The file is opened on the first iteration, so a response that is never
    sent holds no descriptor.  Stops early once ``time.monotonic()`` passes
    *deadline*.
    """
    sent = 0
    with open(path, "rb") as handle:
        while True:
            if deadline is not None and time.monotonic() > deadline:
                logger.error("transfer_deadline_exceeded", path=str(path), bytes_sent=sent)
                return
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            sent += len(chunk)
            yield chunk

    logger.debug("transfer_streamed", path=str(path), bytes_sent=sent)


class StreamingTransporter(Transporter):
    """Sends the file from this process within the request's budget."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, strict_memory_budget: bool = False) -> None:
        self.chunk_size = chunk_size
        self.strict_memory_budget = strict_memory_budget

    def send(
        self,
        path: Path,
        request: TransferRequest,
        headers: list[Header],
        budget: ResourceBudget,
    ) -> TransferOutcome:
        size = request.declared_size
        if size == UNKNOWN_SIZE:
            size = path.stat().st_size

        self._adapt_budget(path, size, budget)

        stream_headers = {"content-length": str(size)}
        if not budget.compression:
            stream_headers["content-encoding"] = "identity"

        if size > self.chunk_size:
            return self._send_chunked(path, size, headers, stream_headers, budget)
        return self._send_single(path, size, headers, stream_headers, budget)

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def _adapt_budget(self, path: Path, size: int, budget: ResourceBudget) -> None:
        if (
            self.strict_memory_budget
            and budget.needs_more_memory(size)
            and budget.projected_memory(size) > budget.memory_ceiling
        ):
            raise FileTooLargeError(str(path), size, budget.memory_ceiling)

        budget.raise_memory_for(size)
        budget.disable_compression()
        budget.extend_time_for(size)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _send_chunked(
        self,
        path: Path,
        size: int,
        headers: list[Header],
        stream_headers: dict[str, str],
        budget: ResourceBudget,
    ) -> TransferOutcome:
        try:
            # Fail before any header is committed; the stream reopens the file.
            with open(path, "rb"):
                pass
        except OSError as exc:
            logger.error("transfer_open_failed", path=str(path), strategy="chunked", error=str(exc))
            return TransferOutcome(success=False, strategy="chunked", size=size, budget=budget)

        deadline = time.monotonic() + budget.time_limit if budget.time_limit else None
        response = StreamingResponse(
            iter_file(path, self.chunk_size, deadline),
            headers=stream_headers,
        )
        apply_headers(response, headers)

        logger.info(
            "transfer_started",
            path=str(path),
            strategy="chunked",
            size=size,
            chunk_size=self.chunk_size,
            time_limit=budget.time_limit,
            memory_limit=budget.memory_limit,
        )
        return TransferOutcome(success=True, strategy="chunked", size=size, budget=budget, response=response)

    def _send_single(
        self,
        path: Path,
        size: int,
        headers: list[Header],
        stream_headers: dict[str, str],
        budget: ResourceBudget,
    ) -> TransferOutcome:
        try:
            with open(path, "rb") as handle:
                body = handle.read()
        except OSError as exc:
            logger.error("transfer_open_failed", path=str(path), strategy="single", error=str(exc))
            return TransferOutcome(success=False, strategy="single", size=size, budget=budget)

        response = Response(content=body, headers=stream_headers)
        apply_headers(response, headers)

        logger.info("transfer_started", path=str(path), strategy="single", size=size)
        return TransferOutcome(success=True, strategy="single", size=size, budget=budget, response=response)

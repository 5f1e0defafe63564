"""Request / response logging middleware using structlog.

Logs each request with method, path, status code and timing.  For
downloads the declared length and the delivery directive (if any) are
logged too; the body itself may still be streaming when the log line is
written.
"""

from __future__ import annotations

import time

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from src.utils.logging import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every HTTP request with timing and response status."""

    def __init__(self, app, offload_header: str = "x-sendfile") -> None:
        super().__init__(app)
        self.offload_header = offload_header

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            method=request.method,
            path=request.url.path,
            request_id=request.headers.get("x-request-id", ""),
        )

        logger.info(
            "request_started",
            query=str(request.url.query),
            user_agent=request.headers.get("user-agent", ""),
        )

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.error("request_failed", elapsed_ms=elapsed_ms)
            raise

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        log_fn = logger.info if response.status_code < 400 else logger.warning
        log_fn(
            "request_completed",
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
            content_length=response.headers.get("content-length", ""),
            offloaded=self.offload_header in response.headers,
        )
        return response

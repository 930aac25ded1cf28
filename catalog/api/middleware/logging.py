"""
Request Logging Middleware
One log line per request with method, path, status and duration.
Chunk uploads are the hot path, so only failures and slow calls go above INFO.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 2000.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and sets X-Response-Time on the response."""

    def __init__(self, app, slow_request_ms: float = SLOW_REQUEST_MS):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        context = {
            "request_id": request.headers.get("X-Request-ID", "-"),
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"{request.method} {request.url.path} raised after {elapsed_ms:.1f}ms",
                exc_info=True,
                extra={**context, "duration_ms": elapsed_ms},
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if elapsed_ms >= self.slow_request_ms else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)",
            extra={**context, "status_code": response.status_code, "duration_ms": elapsed_ms},
        )

        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        return response

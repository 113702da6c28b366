"""
Request logging middleware.

Each request gets an id (the caller's ``X-Request-ID`` if present) that is
bound into the structlog context, so ledger events logged while serving
the request can be traced back to it.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from workshop.config import get_logger
from workshop.config.logging import bind_request_context, clear_request_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Ledger writes are logged at info; reads only at debug
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request completion with status and timing."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000

        log = logger.info if request.method in WRITE_METHODS or response.status_code >= 400 else logger.debug
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(elapsed_ms, 2),
        )
        clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        return response

"""Request correlation and latency logging."""
import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and reports slow ones."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse an upstream request id when present
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        # Calculate timing
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        # Add headers
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"

        # For /api/search/stream this is time to first byte only
        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"SLOW REQUEST [{request_id}]: {request.method} {request.url.path} took {elapsed:.3f}s"
            )

        return response

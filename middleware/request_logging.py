"""
Request logging middleware.

Provides:
- A request ID per request for correlation (echoed as X-Request-ID)
- request_id, method, path and hashed client IP bound into structlog
  contextvars, so every log line emitted while serving the request carries them
- One ``request_completed`` line with status and duration
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from shared.ip_utils import get_client_ip
from shared.logging import get_logger, hash_ip

log = get_logger("speedforce.request")


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            ip_hash=hash_ip(get_client_ip(request)),
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "unhandled_exception",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=exc,
            )
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        if response.status_code >= 500:
            log_fn = log.error
        elif response.status_code >= 400:
            log_fn = log.warning
        else:
            log_fn = log.info
        log_fn(
            "request_completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        response.headers["X-Request-ID"] = request_id
        return response

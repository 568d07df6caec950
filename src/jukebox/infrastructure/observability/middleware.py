"""Request logging middleware with correlation ids."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from jukebox.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# The device polls every second or so; at INFO those lines would bury everything else.
QUIET_PATHS = frozenset({"/api/esp32/poll", "/health"})
UNLOGGED_PREFIXES = ("/covers/",)


def _log_level_for(path: str) -> int | None:
    """Level request lines are logged at for a path, None for not at all."""
    if path.startswith(UNLOGGED_PREFIXES):
        return None
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request on the way in and out and echo its correlation id.

    The id comes from the X-Correlation-ID request header when the caller sends one,
    otherwise a fresh one is generated; either way the response carries it back.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        method, path = request.method, request.url.path
        level = _log_level_for(path)

        if level is not None:
            logger.log(
                level,
                f"→ {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "query": str(request.query_params),
                    "client_ip": request.client.host if request.client else None,
                },
            )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"Request failed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.perf_counter() - started) * 1000),
                    "error_type": type(e).__name__,
                },
            )
            raise

        elapsed_ms = round((time.perf_counter() - started) * 1000)
        if level is not None:
            marker = "✓" if response.status_code < 400 else "✗"
            logger.log(
                level,
                f"{marker} {method} {path} → {response.status_code} ({elapsed_ms}ms)",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

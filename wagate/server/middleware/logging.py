"""Request logging middleware."""
import logging
import time
from typing import Any, Callable, Mapping
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("wagate.server")
REDACTED_PARAMS = frozenset({"token", "access_token", "authorization", "message", "text"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request with its session id, status and duration.

    Server errors log at WARNING so they stand out from the steady polling
    of /api/qr and /api/status.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        started = time.perf_counter()
        params = redact_params(request.query_params)
        logger.debug("Request: %s %s params=%s", request.method, request.url.path, params)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level, "%s %s session=%s status=%d duration=%.2fms",
            request.method, request.url.path, params.get("session_id", "-"),
            response.status_code, duration_ms,
        )
        return response


def redact_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Copy ``params`` with credentials and message bodies masked."""
    return {
        key: (
            "[REDACTED]" if key.lower() in REDACTED_PARAMS
            else redact_params(value) if isinstance(value, Mapping)
            else value
        )
        for key, value in params.items()
    }

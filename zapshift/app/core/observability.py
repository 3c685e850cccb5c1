"""
Logging setup and per-request access logging.

Each request gets a correlation id (taken from `X-Correlation-ID` when the
client sends one) that is echoed back and attached to the access log record.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("zapshift.http")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
CORRELATION_HEADER = "X-Correlation-ID"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the `zapshift` logger tree once per process."""
    root = logging.getLogger("zapshift")
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())
    root.propagate = False


def status_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        logger.log(
            status_log_level(response.status_code),
            "%s %s -> %s (%sms)",
            request.method, request.url.path, response.status_code, duration_ms,
            extra={
                "correlation_id": correlation_id,
                "client_ip": request.client.host if request.client else "unknown",
                "duration_ms": duration_ms,
            },
        )
        return response

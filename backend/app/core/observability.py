"""
Observability for the Shared Charge API.

Adds correlation IDs and structured logging context to requests.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

logger = logging.getLogger("backend.app.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp every log record with the current request's correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the application logger tree."""
    app_logger = logging.getLogger("backend")
    app_logger.setLevel(level.upper())
    if any(isinstance(f, CorrelationIdFilter) for h in app_logger.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    app_logger.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # 1. Generate or extract Correlation ID
        correlation_id = request.headers.get("X-Correlation-ID", uuid.uuid4().hex[:16])
        token = correlation_id_var.set(correlation_id)

        # 2. Start Timer
        start_time = time.perf_counter()

        try:
            # 3. Process Request
            response = await call_next(request)

            # 4. Calculate Duration
            process_time = (time.perf_counter() - start_time) * 1000  # ms

            # 5. Add Header to Response
            response.headers["X-Correlation-ID"] = correlation_id
            response.headers["X-Process-Time"] = f"{process_time:.2f}"

            # 6. Structured Log
            log_data = {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(process_time, 2),
                "ip": request.client.host if request.client else "unknown"
            }

            if response.status_code >= 500:
                logger.error("Request failed %s", log_data, extra=log_data)
            elif response.status_code >= 400:
                logger.warning("Request error %s", log_data, extra=log_data)
            else:
                logger.info("Request %s", log_data, extra=log_data)

            return response
        finally:
            correlation_id_var.reset(token)

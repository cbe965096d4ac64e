"""Request context middleware — request IDs and one access line per request.

Each request gets an ID (the caller's X-Request-ID header, or a fresh
UUID).  It is stored in a ContextVar so every log line emitted while the
request is in flight carries it, even though many requests share the
event loop thread, and it is echoed back in the response header.

The access line includes the route template next to the raw path: the
template is what the duration histogram is tagged with, so it is the
join key between a dashboard panel and the log search.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from product_metrics.middleware.metrics import route_template

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Attach the current request ID to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Add the request-ID filter to the root handlers (idempotent)."""
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)
        start = time.monotonic()

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                # The traceback is logged by the server; one line here keeps
                # the failed request visible in the access log.
                self._log(request, req_id, 500, start, failure=type(exc).__name__)
                raise

            self._log(request, req_id, response.status_code, start)
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)

    @staticmethod
    def _log(
        request: Request,
        req_id: str,
        status_code: int,
        start: float,
        failure: str | None = None,
    ) -> None:
        duration_ms = round((time.monotonic() - start) * 1000, 1)
        extra = {
            "request_id": req_id,
            "method": request.method,
            "path": request.url.path,
            "route": route_template(request),
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if failure is None:
            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
                extra=extra,
            )
        else:
            logger.warning(
                "%s %s raised %s (%.1fms)",
                request.method,
                request.url.path,
                failure,
                duration_ms,
                extra=extra,
            )

"""Request instrumentation middleware — times every HTTP request.

For each request:
  1. START: note the monotonic start time
  2. hand the request to the route (which may await downstream I/O)
  3. END: elapsed = now - start, then observe it in the duration
     histogram tagged with the matched route template and status code

If the route raises, the request is recorded with status 500 and the
exception is re-raised unchanged; Starlette turns it into the 500
response.  The middleware observes failures, it never handles them.

WHY THE ROUTE TEMPLATE, NOT THE URL PATH
------------------------------------------
Every distinct tag set is a separate series that the collector stores
forever.  Tagging by raw path would make /products/1, /products/2, ...
each their own series.  The route template (/products/{product_id}) is
bounded by the number of routes in the app.  Requests that match no
route share a single "<unmatched>" value for the same reason.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from product_metrics.metrics.recorder import Histogram

logger = logging.getLogger(__name__)

UNMATCHED_ROUTE = "<unmatched>"


def route_template(request: Request) -> str:
    """The path template of the route that handled the request, if any."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) else UNMATCHED_ROUTE


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record a duration observation for every HTTP request."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        duration: Histogram,
        metrics_path: str = "/metrics",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self._duration = duration
        self._metrics_path = metrics_path
        self._clock = clock

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes are not application traffic.
        if request.url.path == self._metrics_path:
            return await call_next(request)

        start = self._clock()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            self._record(request, status_code, self._clock() - start)

        return response

    def _record(self, request: Request, status_code: str, elapsed: float) -> None:
        try:
            self._duration.observe(
                max(elapsed, 0.0),
                route=route_template(request),
                status_code=status_code,
            )
        except Exception:
            logger.exception(
                "Failed to record request duration for %s %s",
                request.method,
                request.url.path,
            )

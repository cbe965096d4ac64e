"""Scrape endpoint.

The collector GETs this path every scrape interval and stores every
sample line as a point in a time series.  Each response is the
cumulative state at that instant; rates and percentiles are computed by
the collector across successive scrapes.

Example output:
  # HELP http_server_request_duration_seconds HTTP request duration ...
  # TYPE http_server_request_duration_seconds histogram
  http_server_request_duration_seconds_bucket{le="0.005",route="/products",status_code="200"} 12
  ...

A failure while snapshotting or rendering is the scrape's problem only:
it is logged and answered with a 500, which the collector records as a
missed sample.  Application requests are never affected.

SECURITY NOTE: metric data reveals routes, traffic volume, and error
patterns.  In production, keep this path off the public listener (see
METRICS_PORT for serving it on a separate internal port).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse, Response

from product_metrics.api.dependencies import get_registry
from product_metrics.metrics import exposition
from product_metrics.metrics.registry import Registry

logger = logging.getLogger(__name__)


def make_router(path: str = "/metrics") -> APIRouter:
    """Build the scrape router mounted at the configured path."""
    router = APIRouter(tags=["observability"])

    @router.get(path, include_in_schema=False)
    def metrics(registry: Annotated[Registry, Depends(get_registry)]) -> Response:
        """Expose every registered metric in text exposition format."""
        try:
            body = exposition.render(registry.snapshot())
        except Exception:
            logger.exception("Metrics scrape failed")
            return PlainTextResponse(
                "metrics rendering failed\n",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(content=body, media_type=exposition.CONTENT_TYPE)

    return router

"""Application metrics — the single inventory of what the service measures.

Other modules never register metrics themselves.  The app factory calls
register_app_metrics() once with the app's Registry and hands the
resulting AppMetrics to whoever records.  Registering at startup means a
naming conflict (same name, different kind or labels) fails the boot
instead of surfacing as a broken scrape hours later.

WHAT WE MEASURE
----------------
1. http_server_request_duration_seconds (histogram, by route and status)
   Populated by MetricsMiddleware for every request.  From the buckets
   the collector derives latency percentiles:

     histogram_quantile(0.95,
       rate(http_server_request_duration_seconds_bucket[5m]))

   and from _count the request rate per route and status.

2. get_products_error_count (counter, by stage; exposed as get_products_error_count_total)
   Incremented by ProductService when a downstream call fails while the
   product list is being built.  The stage label says which step broke:
   the product query itself, price lookup, or availability lookup.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from product_metrics.metrics.recorder import Counter, Histogram
from product_metrics.metrics.registry import Registry

DEFAULT_REQUEST_BUCKETS: tuple[float, ...] = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
)


class ProductStage(str, enum.Enum):
    """Steps of building the product list, used as the error counter's stage tag."""

    QUERY_PRODUCTS = "query_products"
    FILL_PRICES = "fill_prices"
    FILL_AVAILABILITY = "fill_availability"


@dataclass(frozen=True, slots=True)
class AppMetrics:
    registry: Registry
    request_duration: Histogram
    product_errors: Counter


def register_app_metrics(
    registry: Registry,
    *,
    request_buckets: Iterable[float] = DEFAULT_REQUEST_BUCKETS,
) -> AppMetrics:
    request_duration = registry.histogram(
        "http_server_request_duration_seconds",
        "HTTP request duration in seconds by route template and status code",
        ["route", "status_code"],
        buckets=request_buckets,
    )
    product_errors = registry.counter(
        "get_products_error_count",
        "Failures while building the product list, by stage",
        ["stage"],
    )
    return AppMetrics(
        registry=registry,
        request_duration=request_duration,
        product_errors=product_errors,
    )

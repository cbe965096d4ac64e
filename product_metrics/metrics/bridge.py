"""prometheus_client bridge — serve a Registry through prometheus_client.

The main app renders its own scrape page (api/metrics_endpoint.py).  This
module exists for the other deployment shape: exposing metrics on a
separate internal port, away from public traffic, using prometheus_client's
built-in HTTP server.

RegistryCollector is a prometheus_client "custom collector": on every
scrape prometheus_client calls collect(), and we translate one snapshot of
our Registry into its metric families.  Nothing is copied or cached in
between, so the side port always shows the same state as /metrics.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from wsgiref.simple_server import WSGIServer

from prometheus_client import CollectorRegistry, start_http_server
from prometheus_client.core import (
    CounterMetricFamily,
    HistogramMetricFamily,
    Metric,
)
from prometheus_client.registry import Collector

from product_metrics.metrics.exposition import format_value
from product_metrics.metrics.registry import Registry
from product_metrics.metrics.types import CounterValue, HistogramValue, MetricKind

logger = logging.getLogger(__name__)


class RegistryCollector(Collector):
    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def collect(self) -> Iterator[Metric]:
        for metric in self._registry.snapshot():
            label_names = (
                [k for k, _ in metric.series[0].tags.pairs] if metric.series else []
            )
            documentation = metric.help or metric.name

            family: CounterMetricFamily | HistogramMetricFamily
            if metric.kind is MetricKind.COUNTER:
                family = CounterMetricFamily(
                    metric.name, documentation, labels=label_names
                )
            else:
                family = HistogramMetricFamily(
                    metric.name, documentation, labels=label_names
                )

            for series in metric.series:
                label_values = [v for _, v in series.tags.pairs]
                value = series.value
                if isinstance(value, CounterValue) and isinstance(
                    family, CounterMetricFamily
                ):
                    family.add_metric(label_values, value.value)
                elif isinstance(value, HistogramValue) and isinstance(
                    family, HistogramMetricFamily
                ):
                    family.add_metric(
                        label_values,
                        buckets=[
                            (format_value(bound), count)
                            for bound, count in value.buckets
                        ],
                        sum_value=value.sum,
                    )
                else:
                    raise TypeError(
                        f"{metric.kind.value} metric {metric.name} holds a "
                        f"{type(value).__name__} series"
                    )
            yield family


def collector_registry_for(registry: Registry) -> CollectorRegistry:
    """A private prometheus_client registry holding only our collector."""
    collector_registry = CollectorRegistry(auto_describe=False)
    collector_registry.register(RegistryCollector(registry))
    return collector_registry


def start_metrics_server(
    registry: Registry, port: int, addr: str = "0.0.0.0"
) -> tuple[WSGIServer, threading.Thread]:
    """Serve the registry on its own port from a background thread.

    Returns the server and its thread; call server.shutdown() to stop.
    """
    server, thread = start_http_server(
        port, addr=addr, registry=collector_registry_for(registry)
    )
    logger.info("Metrics side server listening on %s:%d", addr, port)
    return server, thread

"""Text exposition renderer — turns a registry snapshot into scrape output.

Example output:

  # HELP get_products_error_count_total Failures while building the product list
  # TYPE get_products_error_count_total counter
  get_products_error_count_total{stage="fill_prices"} 3
  get_products_error_count_total{stage="query_products"} 2
  # HELP request_duration_seconds Request duration
  # TYPE request_duration_seconds histogram
  request_duration_seconds_bucket{le="0.5"} 1
  request_duration_seconds_bucket{le="1"} 2
  request_duration_seconds_bucket{le="5"} 3
  request_duration_seconds_bucket{le="+Inf"} 3
  request_duration_seconds_sum 5.2
  request_duration_seconds_count 3

The collector stores each sample line as one point in a time series.
Nothing here aggregates across scrapes: every line is the cumulative
value at the moment of the snapshot, and rates/percentiles are the
collector's job.

The renderer is a pure function of the snapshot, and snapshots are
ordered (metrics by name, series by tag set), so rendering an unchanged
registry twice yields byte-identical output.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from prometheus_client import CONTENT_TYPE_LATEST

from product_metrics.metrics.types import (
    CounterValue,
    HistogramValue,
    MetricKind,
    MetricSnapshot,
    TagSet,
)

CONTENT_TYPE = CONTENT_TYPE_LATEST


def format_value(value: float) -> str:
    """Render a sample value or bucket bound.

    Integral values drop the fractional part (3, not 3.0), so counters
    and bucket bounds read the way people write them.
    """
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _escape_label_value(value: str) -> str:
    return value.replace("\\", r"\\").replace("\n", r"\n").replace('"', r"\"")


def _escape_help(text: str) -> str:
    return text.replace("\\", r"\\").replace("\n", r"\n")


def format_tags(tags: TagSet, *, le: float | None = None) -> str:
    """Render a tag set as {k="v",...}; empty string when there is nothing to show.

    For histogram buckets, le comes first and the metric's own tags follow
    in key order.
    """
    parts = []
    if le is not None:
        parts.append(f'le="{format_value(le)}"')
    parts.extend(f'{key}="{_escape_label_value(val)}"' for key, val in tags.pairs)
    if not parts:
        return ""
    return "{" + ",".join(parts) + "}"


def _family_name(metric: MetricSnapshot) -> str:
    # HELP/TYPE only attach to samples carrying exactly this name.
    if metric.kind is MetricKind.COUNTER:
        return f"{metric.name}_total"
    return metric.name


def _render_metric(metric: MetricSnapshot) -> Iterable[str]:
    family = _family_name(metric)
    help_text = _escape_help(metric.help) if metric.help else metric.name
    yield f"# HELP {family} {help_text}"
    yield f"# TYPE {family} {metric.kind.value}"

    for series in metric.series:
        value = series.value
        if isinstance(value, CounterValue):
            yield f"{metric.name}_total{format_tags(series.tags)} {format_value(value.value)}"
        elif isinstance(value, HistogramValue):
            for bound, count in value.buckets:
                yield (
                    f"{metric.name}_bucket{format_tags(series.tags, le=bound)} "
                    f"{format_value(count)}"
                )
            tags = format_tags(series.tags)
            yield f"{metric.name}_sum{tags} {format_value(value.sum)}"
            yield f"{metric.name}_count{tags} {format_value(value.count)}"
        else:
            raise TypeError(
                f"cannot render series value of type {type(value).__name__}"
            )


def render(snapshot: Iterable[MetricSnapshot]) -> str:
    """Serialize a registry snapshot in the text exposition format."""
    lines: list[str] = []
    for metric in snapshot:
        lines.extend(_render_metric(metric))
    if not lines:
        return ""
    return "\n".join(lines) + "\n"

"""The metrics Registry — owner of every metric definition and series.

WHY NOT THE prometheus_client GLOBAL REGISTRY
-----------------------------------------------
prometheus_client keeps one process-wide REGISTRY.  That is convenient
until you test: counters can't be reset, so every test has to assert on
deltas, and two tests that register the same name with different labels
collide.  Here a Registry is an ordinary object.  The app factory builds
one and hands it to whoever records or renders; a test builds a fresh
one and throws it away.

LOCKING
--------
  - self._lock guards the two dicts (definitions and series maps).  It is
    held only to insert or to copy references, never while a series is
    being updated or copied.
  - each series has its own lock (see series.py).

A recording call for an existing series does one dict lookup and takes
only that series' lock.  First use of a new tag set takes the registry
lock once, re-checks, and inserts, so concurrent first use still yields
exactly one series object.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable, Mapping

from product_metrics.core.errors import ConflictError, InvalidArgument
from product_metrics.metrics.exposition import format_value
from product_metrics.metrics.recorder import Counter, Histogram
from product_metrics.metrics.series import CounterSeries, HistogramSeries, Series
from product_metrics.metrics.types import (
    CounterValue,
    MetricHandle,
    MetricKind,
    MetricSnapshot,
    SeriesSnapshot,
    TagSet,
    validate_buckets,
    validate_label_names,
    validate_metric_name,
)

logger = logging.getLogger(__name__)

Tags = Mapping[str, object] | TagSet | None


def _canonical_name(name: str, kind: MetricKind) -> str:
    validate_metric_name(name)
    if kind is MetricKind.COUNTER and name.endswith("_total"):
        name = name[: -len("_total")]
        validate_metric_name(name)
    return name


class Registry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: dict[str, MetricHandle] = {}
        self._series: dict[str, dict[TagSet, Series]] = {}

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: str) -> bool:
        return name in self._metrics

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        kind: MetricKind | str,
        *,
        help: str = "",
        label_names: Iterable[str] = (),
        buckets: Iterable[float] | None = None,
    ) -> MetricHandle:
        """Register a metric, or return the existing handle for it.

        Registering the same name again with the same kind, labels, and
        buckets returns the first handle (help text is not compared).
        Any other difference raises ConflictError and leaves the first
        registration in place.
        """
        try:
            kind = MetricKind(kind)
        except ValueError:
            raise InvalidArgument(f"unknown metric kind: {kind!r}") from None

        canonical = _canonical_name(name, kind)
        labels = validate_label_names(label_names, kind)
        if kind is MetricKind.HISTOGRAM:
            bounds = validate_buckets(buckets)
        elif buckets is not None:
            raise InvalidArgument("buckets only apply to histograms")
        else:
            bounds = ()

        candidate = MetricHandle(
            name=canonical,
            kind=kind,
            help=help,
            label_names=labels,
            buckets=bounds,
        )

        with self._lock:
            existing = self._metrics.get(canonical)
            if existing is not None:
                if existing.same_shape(candidate):
                    return existing
                raise ConflictError(
                    f"metric {canonical!r} is already registered as "
                    f"{_describe(existing)}; cannot re-register as "
                    f"{_describe(candidate)}"
                )
            self._metrics[canonical] = candidate
            self._series[canonical] = {}

        logger.debug("Registered %s %s labels=%s", kind.value, canonical, labels)
        return candidate

    def counter(
        self, name: str, help: str = "", label_names: Iterable[str] = ()
    ) -> Counter:
        """Register a counter and return a Counter recorder bound to it."""
        handle = self.register(
            name, MetricKind.COUNTER, help=help, label_names=label_names
        )
        return Counter(self, handle)

    def histogram(
        self,
        name: str,
        help: str = "",
        label_names: Iterable[str] = (),
        buckets: Iterable[float] | None = None,
    ) -> Histogram:
        """Register a histogram and return a Histogram recorder bound to it."""
        handle = self.register(
            name,
            MetricKind.HISTOGRAM,
            help=help,
            label_names=label_names,
            buckets=buckets,
        )
        return Histogram(self, handle)

    # ------------------------------------------------------------------
    # Series lookup
    # ------------------------------------------------------------------

    def get_or_create_series(self, handle: MetricHandle, tags: Tags = None) -> Series:
        """Return the series for (handle, tags), creating it on first use."""
        series_map = self._series_map(handle)
        tag_set = tags if isinstance(tags, TagSet) else TagSet.of(tags)

        series = series_map.get(tag_set)
        if series is not None:
            return series

        if tag_set.keys() != handle.label_names:
            raise InvalidArgument(
                f"metric {handle.name!r} expects tags {list(handle.label_names)}, "
                f"got {list(tag_set.keys())}"
            )

        with self._lock:
            series = series_map.get(tag_set)
            if series is None:
                if handle.kind is MetricKind.COUNTER:
                    series = CounterSeries(tag_set)
                else:
                    series = HistogramSeries(tag_set, handle.buckets)
                series_map[tag_set] = series
        return series

    def _series_map(self, handle: MetricHandle) -> dict[TagSet, Series]:
        if self._metrics.get(handle.name) is not handle:
            raise InvalidArgument(
                f"metric {handle.name!r} is not registered with this registry"
            )
        return self._series[handle.name]

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def increment(
        self, handle: MetricHandle, tags: Tags = None, delta: float = 1
    ) -> None:
        """Add a non-negative delta to a counter series."""
        if handle.kind is not MetricKind.COUNTER:
            raise InvalidArgument(f"metric {handle.name!r} is not a counter")
        if not _is_number(delta) or not math.isfinite(delta):
            raise InvalidArgument(f"counter delta must be a finite number (got {delta!r})")
        if delta < 0:
            raise InvalidArgument(
                f"counters can only increase; got delta={delta!r} for {handle.name!r}"
            )
        series = self.get_or_create_series(handle, tags)
        series.add(delta)

    def observe(self, handle: MetricHandle, tags: Tags, value: float) -> None:
        """Record one observation in a histogram series."""
        if handle.kind is not MetricKind.HISTOGRAM:
            raise InvalidArgument(f"metric {handle.name!r} is not a histogram")
        if not _is_number(value) or not math.isfinite(value):
            raise InvalidArgument(
                f"histogram observations must be finite numbers (got {value!r})"
            )
        series = self.get_or_create_series(handle, tags)
        series.add(value)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def snapshot(self) -> list[MetricSnapshot]:
        """Copy every series into an immutable, deterministically ordered view.

        Metrics come out sorted by name and series sorted by tag set.  Each
        series is copied under its own lock, so its buckets, sum, and count
        are mutually consistent.
        """
        with self._lock:
            entries = [
                (handle, list(self._series[name].values()))
                for name, handle in sorted(self._metrics.items())
            ]

        result = []
        for handle, series_list in entries:
            series_list.sort(key=lambda s: s.tags.pairs)
            result.append(
                MetricSnapshot(
                    name=handle.name,
                    kind=handle.kind,
                    help=handle.help,
                    series=tuple(
                        SeriesSnapshot(tags=s.tags, value=s.copy()) for s in series_list
                    ),
                )
            )
        return result

    def series_count(self) -> int:
        with self._lock:
            return sum(len(series_map) for series_map in self._series.values())

    def get_sample_value(
        self, name: str, tags: Mapping[str, object] | None = None
    ) -> float | None:
        """Look up one exposed sample, e.g. ``x_total`` or ``x_bucket``.

        Mirrors prometheus_client's CollectorRegistry.get_sample_value: the
        name is a sample name as it appears on the scrape page, histogram
        bucket lookups pass ``le`` among the tags, and an unknown sample
        returns None.
        """
        wanted = dict(tags or {})
        for snap in self.snapshot():
            for series in snap.series:
                value = series.value
                if isinstance(value, CounterValue):
                    if name == f"{snap.name}_total" and series.tags == TagSet.of(wanted):
                        return value.value
                    continue

                if name == f"{snap.name}_bucket":
                    le = wanted.get("le")
                    rest = {k: v for k, v in wanted.items() if k != "le"}
                    if le is None or series.tags != TagSet.of(rest):
                        continue
                    for bound, count in value.buckets:
                        if format_value(bound) == _format_le(le):
                            return count
                elif series.tags == TagSet.of(wanted):
                    if name == f"{snap.name}_sum":
                        return value.sum
                    if name == f"{snap.name}_count":
                        return value.count
        return None


def _describe(handle: MetricHandle) -> str:
    parts = [handle.kind.value, f"labels={list(handle.label_names)}"]
    if handle.buckets:
        parts.append(f"buckets={[format_value(b) for b in handle.buckets]}")
    return " ".join(parts)


def _format_le(le: object) -> str:
    if isinstance(le, str):
        try:
            return format_value(float(le))
        except ValueError:
            return le
    return format_value(float(le))  # type: ignore[arg-type]


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

"""Mutable per-series accumulators.

Each series carries its own lock.  Recording on one series never waits
for another series, and a snapshot copies series one at a time, so a
scrape holds any given lock only for the few instructions it takes to
copy a counter or a bucket list.

Argument validation happens in the Registry before a series is touched;
the methods here assume their input is already valid.
"""

from __future__ import annotations

import threading
from bisect import bisect_left

from product_metrics.metrics.types import CounterValue, HistogramValue, TagSet


class CounterSeries:
    __slots__ = ("tags", "_lock", "_value")

    def __init__(self, tags: TagSet) -> None:
        self.tags = tags
        self._lock = threading.Lock()
        self._value: float = 0

    def add(self, delta: float) -> None:
        with self._lock:
            self._value += delta

    def copy(self) -> CounterValue:
        with self._lock:
            return CounterValue(value=self._value)


class HistogramSeries:
    """Bucket counts are stored per bucket and accumulated on copy.

    An observation lands in the first bucket whose upper bound is >= the
    value.  Accumulating on copy means every cumulative bucket at or above
    that bound rises by exactly one, and buckets below it are untouched.
    """

    __slots__ = ("tags", "_bounds", "_lock", "_counts", "_sum", "_count")

    def __init__(self, tags: TagSet, bounds: tuple[float, ...]) -> None:
        self.tags = tags
        self._bounds = bounds
        self._lock = threading.Lock()
        self._counts = [0] * len(bounds)
        self._sum: float = 0
        self._count = 0

    def add(self, value: float) -> None:
        index = bisect_left(self._bounds, value)
        with self._lock:
            self._counts[index] += 1
            self._sum += value
            self._count += 1

    def copy(self) -> HistogramValue:
        with self._lock:
            counts = list(self._counts)
            total_sum = self._sum
            total_count = self._count

        cumulative = 0
        buckets = []
        for bound, n in zip(self._bounds, counts):
            cumulative += n
            buckets.append((bound, cumulative))
        return HistogramValue(buckets=tuple(buckets), sum=total_sum, count=total_count)


Series = CounterSeries | HistogramSeries

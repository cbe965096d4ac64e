"""Value types shared by the registry, recorders, and renderer.

Everything in here is immutable.  Mutable accumulator state lives only in
the series objects owned by a Registry (see series.py); what leaves the
registry is always one of these frozen snapshots.
"""

from __future__ import annotations

import enum
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from product_metrics.core.errors import InvalidArgument

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

INF = math.inf

# Same defaults prometheus_client uses, minus the trailing +Inf which every
# histogram gets implicitly.
DEFAULT_BUCKETS: tuple[float, ...] = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    7.5,
    10.0,
)


class MetricKind(str, enum.Enum):
    COUNTER = "counter"
    HISTOGRAM = "histogram"


def _tag_value(value: object) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True, slots=True)
class TagSet:
    """An order-independent set of tag key/value pairs.

    Pairs are stored sorted by key, so two TagSets built from the same
    pairs in any insertion order compare (and hash) equal, and rendering
    them is deterministic.
    """

    pairs: tuple[tuple[str, str], ...] = ()

    @staticmethod
    def of(tags: Mapping[str, object] | None = None) -> TagSet:
        if not tags:
            return EMPTY_TAGS
        return TagSet(
            pairs=tuple(sorted((str(k), _tag_value(v)) for k, v in tags.items()))
        )

    def keys(self) -> tuple[str, ...]:
        return tuple(k for k, _ in self.pairs)

    def as_dict(self) -> dict[str, str]:
        return dict(self.pairs)

    def __bool__(self) -> bool:
        return bool(self.pairs)


EMPTY_TAGS = TagSet()


@dataclass(frozen=True, slots=True)
class MetricHandle:
    """The registered definition of one metric.

    name:        canonical metric name (counters without the _total suffix)
    kind:        counter or histogram
    help:        one-line description rendered as # HELP
    label_names: sorted tag keys every series of this metric must carry
    buckets:     histogram upper bounds, ascending, ending in +Inf
                 (empty for counters)
    """

    name: str
    kind: MetricKind
    help: str = ""
    label_names: tuple[str, ...] = ()
    buckets: tuple[float, ...] = ()

    def same_shape(self, other: MetricHandle) -> bool:
        """True if both definitions describe the same metric (help aside)."""
        return (
            self.name == other.name
            and self.kind == other.kind
            and self.label_names == other.label_names
            and self.buckets == other.buckets
        )


# ---------------------------------------------------------------------------
# Snapshot values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CounterValue:
    value: float


@dataclass(frozen=True, slots=True)
class HistogramValue:
    """Point-in-time copy of one histogram series.

    buckets holds (upper_bound, cumulative_count) pairs in bound order, the
    last one being (+Inf, count).
    """

    buckets: tuple[tuple[float, int], ...]
    sum: float
    count: int


@dataclass(frozen=True, slots=True)
class SeriesSnapshot:
    tags: TagSet
    value: CounterValue | HistogramValue


@dataclass(frozen=True, slots=True)
class MetricSnapshot:
    name: str
    kind: MetricKind
    help: str
    series: tuple[SeriesSnapshot, ...]


# ---------------------------------------------------------------------------
# Validation helpers (used at registration time)
# ---------------------------------------------------------------------------


def validate_metric_name(name: str) -> str:
    if not isinstance(name, str) or not _METRIC_NAME_RE.match(name):
        raise InvalidArgument(f"invalid metric name: {name!r}")
    return name


def validate_label_names(
    label_names: Iterable[str], kind: MetricKind
) -> tuple[str, ...]:
    names = tuple(label_names)
    for label in names:
        if not isinstance(label, str) or not _LABEL_NAME_RE.match(label):
            raise InvalidArgument(f"invalid label name: {label!r}")
        if label.startswith("__"):
            raise InvalidArgument(f"label names starting with __ are reserved: {label!r}")
        if kind is MetricKind.HISTOGRAM and label == "le":
            raise InvalidArgument("histograms cannot use 'le' as a label name")
    if len(set(names)) != len(names):
        raise InvalidArgument(f"duplicate label names: {names!r}")
    return tuple(sorted(names))


def validate_buckets(buckets: Iterable[float] | None) -> tuple[float, ...]:
    """Normalize histogram bounds: floats, strictly ascending, ending in +Inf."""
    raw = DEFAULT_BUCKETS if buckets is None else tuple(buckets)
    try:
        bounds = [float(b) for b in raw]
    except (TypeError, ValueError):
        raise InvalidArgument(f"bucket bounds must be numbers (got {raw!r})") from None

    if bounds and bounds[-1] == INF:
        bounds.pop()
    if not bounds:
        raise InvalidArgument("a histogram needs at least one finite bucket bound")
    for bound in bounds:
        if not math.isfinite(bound):
            raise InvalidArgument(f"bucket bounds must be finite (got {bound!r})")
    for lower, upper in zip(bounds, bounds[1:]):
        if upper <= lower:
            raise InvalidArgument(
                f"bucket bounds must be strictly ascending (got {raw!r})"
            )
    return (*bounds, INF)

"""Tests for metric registration and series lookup."""

from __future__ import annotations

import math

import pytest

from product_metrics.core.errors import ConflictError, InvalidArgument
from product_metrics.metrics.registry import Registry
from product_metrics.metrics.types import MetricKind, TagSet

# ---- registration ----


def test_register_returns_handle_with_sorted_labels(registry: Registry) -> None:
    handle = registry.register(
        "jobs", MetricKind.COUNTER, help="Jobs run", label_names=["queue", "outcome"]
    )
    assert handle.name == "jobs"
    assert handle.kind is MetricKind.COUNTER
    assert handle.label_names == ("outcome", "queue")
    assert handle.buckets == ()


def test_register_is_idempotent(registry: Registry) -> None:
    first = registry.register("jobs", "counter", label_names=["queue"])
    second = registry.register("jobs", "counter", label_names=["queue"])
    assert first is second
    assert len(registry) == 1


def test_register_ignores_help_differences(registry: Registry) -> None:
    first = registry.register("jobs", "counter", help="original")
    second = registry.register("jobs", "counter", help="reworded")
    assert second is first
    assert second.help == "original"


def test_counter_total_suffix_is_stripped(registry: Registry) -> None:
    a = registry.register("jobs_total", "counter")
    b = registry.register("jobs", "counter")
    assert a is b
    assert a.name == "jobs"


def test_register_different_kind_conflicts_and_keeps_original(
    registry: Registry,
) -> None:
    original = registry.register("latency", "counter")
    with pytest.raises(ConflictError, match="already registered"):
        registry.register("latency", "histogram")

    # The first registration is untouched and still usable.
    assert registry.register("latency", "counter") is original
    registry.increment(original)
    assert registry.get_sample_value("latency_total") == 1


def test_register_different_labels_conflicts(registry: Registry) -> None:
    registry.register("jobs", "counter", label_names=["queue"])
    with pytest.raises(ConflictError):
        registry.register("jobs", "counter", label_names=["queue", "outcome"])


def test_register_different_buckets_conflicts(registry: Registry) -> None:
    registry.register("latency", "histogram", buckets=[0.5, 1, 5])
    with pytest.raises(ConflictError):
        registry.register("latency", "histogram", buckets=[0.5, 1, 10])


def test_register_same_buckets_with_explicit_inf_is_idempotent(
    registry: Registry,
) -> None:
    a = registry.register("latency", "histogram", buckets=[0.5, 1, 5])
    b = registry.register("latency", "histogram", buckets=[0.5, 1.0, 5.0, math.inf])
    assert a is b
    assert a.buckets == (0.5, 1.0, 5.0, math.inf)


def test_histogram_default_buckets(registry: Registry) -> None:
    handle = registry.register("latency", "histogram")
    assert handle.buckets[0] == 0.005
    assert handle.buckets[-1] == math.inf


@pytest.mark.parametrize(
    "buckets",
    [[], [1, 0.5], [0.5, 0.5], [0.5, math.nan], [math.inf], ["fast"]],
)
def test_register_rejects_bad_buckets(registry: Registry, buckets: list) -> None:
    with pytest.raises(InvalidArgument):
        registry.register("latency", "histogram", buckets=buckets)
    assert "latency" not in registry


def test_register_rejects_buckets_on_counter(registry: Registry) -> None:
    with pytest.raises(InvalidArgument, match="only apply to histograms"):
        registry.register("jobs", "counter", buckets=[1, 2])


@pytest.mark.parametrize("name", ["", "1abc", "has-dash", "has space"])
def test_register_rejects_bad_names(registry: Registry, name: str) -> None:
    with pytest.raises(InvalidArgument, match="invalid metric name"):
        registry.register(name, "counter")


@pytest.mark.parametrize("labels", [["bad-label"], ["__reserved"], ["a", "a"]])
def test_register_rejects_bad_label_names(registry: Registry, labels: list) -> None:
    with pytest.raises(InvalidArgument):
        registry.register("jobs", "counter", label_names=labels)


def test_histogram_cannot_use_le_label(registry: Registry) -> None:
    with pytest.raises(InvalidArgument, match="'le'"):
        registry.register("latency", "histogram", label_names=["le"])


def test_register_rejects_unknown_kind(registry: Registry) -> None:
    with pytest.raises(InvalidArgument, match="unknown metric kind"):
        registry.register("jobs", "gauge")


# ---- series lookup ----


def test_same_tags_in_any_order_resolve_to_same_series(registry: Registry) -> None:
    handle = registry.register("jobs", "counter", label_names=["queue", "outcome"])
    a = registry.get_or_create_series(handle, {"queue": "email", "outcome": "ok"})
    b = registry.get_or_create_series(handle, {"outcome": "ok", "queue": "email"})
    c = registry.get_or_create_series(handle, TagSet.of({"queue": "email", "outcome": "ok"}))
    assert a is b is c
    assert registry.series_count() == 1


def test_different_tags_resolve_to_distinct_series(registry: Registry) -> None:
    handle = registry.register("jobs", "counter", label_names=["queue"])
    a = registry.get_or_create_series(handle, {"queue": "email"})
    b = registry.get_or_create_series(handle, {"queue": "sms"})
    assert a is not b
    assert registry.series_count() == 2


def test_wrong_tag_keys_rejected_without_creating_series(registry: Registry) -> None:
    handle = registry.register("jobs", "counter", label_names=["queue"])
    with pytest.raises(InvalidArgument, match="expects tags"):
        registry.get_or_create_series(handle, {"topic": "email"})
    with pytest.raises(InvalidArgument):
        registry.get_or_create_series(handle, {})
    assert registry.series_count() == 0


def test_handle_from_another_registry_rejected(registry: Registry) -> None:
    foreign = Registry().register("jobs", "counter")
    registry.register("jobs", "counter")
    with pytest.raises(InvalidArgument, match="not registered with this registry"):
        registry.increment(foreign)


# ---- sample lookup ----


def test_get_sample_value_unknown_returns_none(registry: Registry) -> None:
    registry.register("jobs", "counter", label_names=["queue"])
    assert registry.get_sample_value("jobs_total", {"queue": "email"}) is None
    assert registry.get_sample_value("nope_total") is None


def test_get_sample_value_reads_histogram_samples(registry: Registry) -> None:
    handle = registry.register(
        "latency", "histogram", label_names=["route"], buckets=[0.5, 1]
    )
    registry.observe(handle, {"route": "/a"}, 0.7)
    tags = {"route": "/a"}
    assert registry.get_sample_value("latency_bucket", {**tags, "le": "0.5"}) == 0
    assert registry.get_sample_value("latency_bucket", {**tags, "le": "1.0"}) == 1
    assert registry.get_sample_value("latency_bucket", {**tags, "le": "+Inf"}) == 1
    assert registry.get_sample_value("latency_sum", tags) == pytest.approx(0.7)
    assert registry.get_sample_value("latency_count", tags) == 1

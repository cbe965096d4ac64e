"""Tests for ProductService stage instrumentation.

The error counter must go up exactly once per failed stage, and the
exception the caller sees must be the very one the downstream raised.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from product_metrics.metrics.inventory import ProductStage, register_app_metrics
from product_metrics.metrics.registry import Registry
from product_metrics.services.catalog import ProductService
from product_metrics.services.faults import DownstreamError, ScriptedFaults


class _OneShotFailure:
    """Raises a specific DownstreamError instance at one stage."""

    def __init__(self, stage: ProductStage) -> None:
        self.stage = stage
        self.error = DownstreamError(stage, "price service timed out")

    async def before(self, stage: ProductStage) -> None:
        if stage is self.stage:
            raise self.error


def _service(registry: Registry, faults=None) -> ProductService:
    metrics = register_app_metrics(registry)
    return ProductService(metrics.product_errors, faults)


def _errors(registry: Registry, stage: ProductStage) -> float | None:
    return registry.get_sample_value(
        "get_products_error_count_total", {"stage": stage.value}
    )


def test_get_products_fills_all_fields(registry: Registry) -> None:
    products = asyncio.run(_service(registry).get_products())
    assert len(products) == 4
    assert all(p.price is not None and p.available is not None for p in products)
    assert products[0].price == Decimal("24.90")


def test_get_products_by_id_skips_unknown(registry: Registry) -> None:
    products = asyncio.run(_service(registry).get_products([3, 42]))
    assert [p.id for p in products] == [3]


def test_get_product_unknown_returns_none(registry: Registry) -> None:
    assert asyncio.run(_service(registry).get_product(42)) is None


def test_success_leaves_error_counters_at_zero(registry: Registry) -> None:
    asyncio.run(_service(registry).get_products())
    for stage in ProductStage:
        assert _errors(registry, stage) == 0


def test_failure_is_counted_and_reraised_unchanged(registry: Registry) -> None:
    faults = _OneShotFailure(ProductStage.FILL_PRICES)
    service = _service(registry, faults)

    with pytest.raises(DownstreamError) as excinfo:
        asyncio.run(service.get_products())

    assert excinfo.value is faults.error
    assert _errors(registry, ProductStage.FILL_PRICES) == 1
    # Later stages never ran.
    assert _errors(registry, ProductStage.FILL_AVAILABILITY) is None


def test_non_downstream_errors_are_not_counted(registry: Registry) -> None:
    class _Broken:
        async def before(self, stage: ProductStage) -> None:
            raise KeyError("bug, not an outage")

    with pytest.raises(KeyError):
        asyncio.run(_service(registry, _Broken()).get_products())
    assert _errors(registry, ProductStage.QUERY_PRODUCTS) == 0


def test_counts_accumulate_per_stage(registry: Registry) -> None:
    faults = ScriptedFaults(
        {
            ProductStage.FILL_AVAILABILITY: [True, True],
            ProductStage.FILL_PRICES: [False, False, True],
        }
    )
    service = _service(registry, faults)
    for _ in range(4):
        try:
            asyncio.run(service.get_products())
        except DownstreamError:
            pass

    assert _errors(registry, ProductStage.FILL_AVAILABILITY) == 2
    assert _errors(registry, ProductStage.FILL_PRICES) == 1
    assert _errors(registry, ProductStage.QUERY_PRODUCTS) == 0

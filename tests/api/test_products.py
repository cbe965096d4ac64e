"""Tests for the demo product endpoints and their error counters.

The faults fixture is overridden with ScriptedFaults so each test decides
exactly which downstream stage fails and when.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from product_metrics.main import create_app
from product_metrics.metrics.inventory import ProductStage
from product_metrics.metrics.registry import Registry
from product_metrics.services.faults import FaultInjector, NoFaults, ScriptedFaults

_ERRORS = "get_products_error_count_total"
_DURATION_COUNT = "http_server_request_duration_seconds_count"


@pytest.fixture
def faults() -> FaultInjector:
    return ScriptedFaults(
        {
            ProductStage.FILL_PRICES: [True, False, True, True],
            ProductStage.QUERY_PRODUCTS: [False, True, False, True],
        }
    )


def _errors(registry: Registry, stage: str) -> float | None:
    return registry.get_sample_value(_ERRORS, {"stage": stage})


def test_list_products_filled_with_price_and_availability(make_settings) -> None:
    client = TestClient(create_app(make_settings(), registry=Registry(), faults=NoFaults()))
    resp = client.get("/products")

    assert resp.status_code == 200
    products = {p["id"]: p for p in resp.json()}
    assert products[1]["name"] == "Espresso beans, 1kg"
    assert products[1]["price"] == "24.90"
    assert products[1]["available"] is True
    assert products[2]["available"] is False


def test_stage_failures_counted_and_requests_fail(
    client: TestClient, registry: Registry
) -> None:
    statuses = [client.get("/products").status_code for _ in range(6)]

    # Call 1: prices fail.  Call 2: query fails.  Call 3: ok.
    # Call 4: query fails.  Call 5: prices fail.  Call 6: prices fail.
    assert statuses == [500, 500, 200, 500, 500, 500]
    assert _errors(registry, "fill_prices") == 3
    assert _errors(registry, "query_products") == 2
    assert _errors(registry, "fill_availability") == 0


def test_failed_requests_recorded_as_500(client: TestClient, registry: Registry) -> None:
    for _ in range(3):
        client.get("/products")

    assert registry.get_sample_value(
        _DURATION_COUNT, {"route": "/products", "status_code": "500"}
    ) == 2
    assert registry.get_sample_value(
        _DURATION_COUNT, {"route": "/products", "status_code": "200"}
    ) == 1


def test_scrape_shows_error_counter_lines(client: TestClient) -> None:
    for _ in range(6):
        client.get("/products")

    lines = client.get("/metrics").text.splitlines()
    assert 'get_products_error_count_total{stage="fill_prices"} 3' in lines
    assert 'get_products_error_count_total{stage="query_products"} 2' in lines

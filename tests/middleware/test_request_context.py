"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header and that one
access line is logged per request, carrying the route template.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from product_metrics.middleware.request_context import (
    _RequestContextFilter,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_not_found(client: TestClient) -> None:
    resp = client.get("/products/404")
    assert resp.status_code == 404
    assert resp.headers.get("x-request-id") is not None


def test_access_line_includes_route_and_status(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="product_metrics.middleware.request_context"):
        client.get("/products/3", headers={"X-Request-ID": "req-42"})

    (record,) = [r for r in caplog.records if getattr(r, "path", None) == "/products/3"]
    assert record.route == "/products/{product_id}"  # type: ignore[attr-defined]
    assert record.status_code == 200  # type: ignore[attr-defined]
    assert record.request_id == "req-42"  # type: ignore[attr-defined]
    assert "GET /products/3" in record.getMessage()


def test_request_id_reset_after_request(client: TestClient) -> None:
    client.get("/health", headers={"X-Request-ID": "short-lived"})
    assert request_id_var.get() == "-"


def test_filter_fills_missing_request_id_only() -> None:
    log_filter = _RequestContextFilter()
    record = logging.LogRecord("t", logging.INFO, "t.py", 1, "msg", (), None)
    log_filter.filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]

    record.request_id = "explicit"  # type: ignore[attr-defined]
    log_filter.filter(record)
    assert record.request_id == "explicit"  # type: ignore[attr-defined]

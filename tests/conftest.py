from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from product_metrics.core.config import Settings
from product_metrics.main import create_app
from product_metrics.metrics.registry import Registry
from product_metrics.services.faults import FaultInjector, NoFaults


def _make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "app_env": "test",
        "log_level": "info",
        "log_json": False,
        "port": 8000,
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return _make_settings


@pytest.fixture
def registry() -> Registry:
    """A fresh, empty registry per test — no state leaks between tests."""
    return Registry()


@pytest.fixture
def faults() -> FaultInjector:
    """Override in a test module to script downstream failures."""
    return NoFaults()


@pytest.fixture
def app(registry: Registry, faults: FaultInjector) -> FastAPI:
    return create_app(_make_settings(), registry=registry, faults=faults)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    # Unhandled route errors should come back as 500 responses, the way a
    # real server answers, rather than being re-raised into the test.
    return TestClient(app, raise_server_exceptions=False)

"""FastAPI dependencies that hand routes the objects built by the app factory.

Nothing here is a module-level singleton: create_app() stores the
registry, the metric inventory, and the product service on app.state,
and routes pull them from the request.  Two apps built in the same
process (or in the same test session) never share metric state.
"""

from __future__ import annotations

from fastapi import Request

from product_metrics.metrics.inventory import AppMetrics
from product_metrics.metrics.registry import Registry
from product_metrics.services.catalog import ProductService


def get_app_metrics(request: Request) -> AppMetrics:
    return request.app.state.metrics


def get_registry(request: Request) -> Registry:
    return request.app.state.metrics.registry


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service

from __future__ import annotations

import logging
import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from product_metrics.api.health import router as health_router
from product_metrics.api.metrics_endpoint import make_router as make_metrics_router
from product_metrics.api.products import router as products_router
from product_metrics.core.config import SETTINGS, Settings
from product_metrics.core.logging import setup_logging
from product_metrics.metrics.bridge import start_metrics_server
from product_metrics.metrics.inventory import register_app_metrics
from product_metrics.metrics.registry import Registry
from product_metrics.middleware.metrics import MetricsMiddleware
from product_metrics.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from product_metrics.services.catalog import ProductService
from product_metrics.services.faults import FaultInjector, NoFaults, RandomFaults

logger = logging.getLogger(__name__)


def _faults_from_settings(settings: Settings) -> FaultInjector:
    if not settings.faults_enabled:
        return NoFaults()
    return RandomFaults(
        max_delay=settings.fault_max_delay_seconds,
        error_rate=settings.fault_error_rate,
        rng=random.Random(settings.fault_seed),
    )


def create_app(
    settings: Settings | None = None,
    *,
    registry: Registry | None = None,
    faults: FaultInjector | None = None,
) -> FastAPI:
    """Build the app with its own Registry (or the one passed in).

    Metric registration happens here, so a conflicting definition fails
    app construction rather than the first scrape.
    """
    settings = settings or SETTINGS
    registry = registry if registry is not None else Registry()
    app_metrics = register_app_metrics(registry, request_buckets=settings.request_buckets)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        if settings.metrics_port is None:
            yield
            return

        server, thread = start_metrics_server(registry, settings.metrics_port)
        try:
            yield
        finally:
            server.shutdown()
            server.server_close()
            thread.join(timeout=5)

    app = FastAPI(
        title="product-metrics",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.state.metrics = app_metrics
    app.state.product_service = ProductService(
        app_metrics.product_errors,
        faults if faults is not None else _faults_from_settings(settings),
    )

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost) → Metrics → route handler
    app.add_middleware(
        MetricsMiddleware,
        duration=app_metrics.request_duration,
        metrics_path=settings.metrics_path,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(make_metrics_router(settings.metrics_path))
    app.include_router(health_router)
    app.include_router(products_router)

    return app


def build_default_app() -> FastAPI:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    install_log_filter()

    app = create_app(SETTINGS)
    logger.info(
        "product-metrics started  env=%s log_level=%s port=%d metrics=%s%s faults=%s",
        SETTINGS.app_env,
        SETTINGS.log_level,
        SETTINGS.port,
        SETTINGS.metrics_path,
        f" (side port {SETTINGS.metrics_port})" if SETTINGS.metrics_port else "",
        "on" if SETTINGS.faults_enabled else "off",
    )
    return app


app = build_default_app()

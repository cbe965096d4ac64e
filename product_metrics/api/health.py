"""Liveness endpoint.

If the process can answer, it is alive.  The body also reports how many
metrics and live series the registry holds, which is a quick way to
spot a tag-cardinality leak without opening the dashboard: the series
count should plateau once every route/status pair has been seen.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from product_metrics.api.dependencies import get_registry
from product_metrics.metrics.registry import Registry

router = APIRouter(tags=["health"])


@router.get("/health")
def health(registry: Annotated[Registry, Depends(get_registry)]) -> dict:
    return {
        "status": "ok",
        "metrics": len(registry),
        "series": registry.series_count(),
    }

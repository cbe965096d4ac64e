"""Demo product endpoints.

These exist to generate realistic traffic for the dashboards: a list
endpoint that fans out to two downstream services, and a detail endpoint
whose route template carries a path parameter.

Downstream failures are deliberately NOT caught here.  The DownstreamError
has already been counted by ProductService; letting it escape means the
request also shows up as a 500 in the duration histogram, which is the
availability signal the dashboards alert on.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from product_metrics.api.dependencies import get_product_service
from product_metrics.services.catalog import Product, ProductService

router = APIRouter(prefix="/products", tags=["products"])


class ProductOut(BaseModel):
    id: int
    name: str
    price: Decimal | None
    available: bool | None

    @staticmethod
    def from_product(product: Product) -> ProductOut:
        return ProductOut(
            id=product.id,
            name=product.name,
            price=product.price,
            available=product.available,
        )


@router.get("", response_model=list[ProductOut])
async def list_products(
    service: Annotated[ProductService, Depends(get_product_service)],
) -> list[ProductOut]:
    products = await service.get_products()
    return [ProductOut.from_product(p) for p in products]


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: int,
    service: Annotated[ProductService, Depends(get_product_service)],
) -> ProductOut:
    product = await service.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="product not found")
    return ProductOut.from_product(product)

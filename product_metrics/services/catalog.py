"""Product catalog with stubbed price and inventory services.

Building the product list takes three downstream steps:

  1. query_products     — read the catalog
  2. fill_prices        — ask the price service for each product's price
  3. fill_availability  — ask the inventory service whether it's in stock

Each step runs inside the error counter's count_exceptions() block for
its stage.  When a step fails, the counter goes up by one and the
original DownstreamError keeps travelling up to the route handler
untouched.  Instrumentation watches the failure; it never handles it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from product_metrics.metrics.inventory import ProductStage
from product_metrics.metrics.recorder import Counter
from product_metrics.services.faults import DownstreamError, FaultInjector, NoFaults


@dataclass(frozen=True, slots=True)
class Product:
    id: int
    name: str
    price: Decimal | None = None
    available: bool | None = None


_SEED_PRODUCTS: tuple[Product, ...] = (
    Product(id=1, name="Espresso beans, 1kg"),
    Product(id=2, name="Burr grinder"),
    Product(id=3, name="Milk frothing pitcher"),
    Product(id=4, name="Pour-over kettle"),
)

_SEED_PRICES: dict[int, Decimal] = {
    1: Decimal("24.90"),
    2: Decimal("149.00"),
    3: Decimal("12.50"),
    4: Decimal("39.99"),
}

_SEED_STOCK: dict[int, int] = {1: 120, 2: 0, 3: 37, 4: 5}


class PriceService:
    def __init__(self, faults: FaultInjector, prices: dict[int, Decimal] | None = None) -> None:
        self._faults = faults
        self._prices = dict(_SEED_PRICES if prices is None else prices)

    async def prices_for(self, product_ids: list[int]) -> dict[int, Decimal]:
        await self._faults.before(ProductStage.FILL_PRICES)
        return {pid: self._prices[pid] for pid in product_ids if pid in self._prices}


class InventoryService:
    def __init__(self, faults: FaultInjector, stock: dict[int, int] | None = None) -> None:
        self._faults = faults
        self._stock = dict(_SEED_STOCK if stock is None else stock)

    async def availability_for(self, product_ids: list[int]) -> dict[int, bool]:
        await self._faults.before(ProductStage.FILL_AVAILABILITY)
        return {pid: self._stock.get(pid, 0) > 0 for pid in product_ids}


class ProductService:
    def __init__(
        self,
        errors: Counter,
        faults: FaultInjector | None = None,
        products: tuple[Product, ...] = _SEED_PRODUCTS,
    ) -> None:
        self._errors = errors
        self._faults = faults or NoFaults()
        self._products = {p.id: p for p in products}
        self.prices = PriceService(self._faults)
        self.inventory = InventoryService(self._faults)

    async def _query_products(self, product_ids: list[int] | None) -> list[Product]:
        await self._faults.before(ProductStage.QUERY_PRODUCTS)
        if product_ids is None:
            return list(self._products.values())
        return [self._products[pid] for pid in product_ids if pid in self._products]

    async def get_products(self, product_ids: list[int] | None = None) -> list[Product]:
        """Return products with price and availability filled in.

        Raises DownstreamError (after counting it) if any stage fails.
        """
        with self._errors.count_exceptions(
            DownstreamError, stage=ProductStage.QUERY_PRODUCTS
        ):
            products = await self._query_products(product_ids)

        ids = [p.id for p in products]

        with self._errors.count_exceptions(
            DownstreamError, stage=ProductStage.FILL_PRICES
        ):
            prices = await self.prices.prices_for(ids)

        with self._errors.count_exceptions(
            DownstreamError, stage=ProductStage.FILL_AVAILABILITY
        ):
            availability = await self.inventory.availability_for(ids)

        return [
            replace(p, price=prices.get(p.id), available=availability.get(p.id))
            for p in products
        ]

    async def get_product(self, product_id: int) -> Product | None:
        products = await self.get_products([product_id])
        return products[0] if products else None

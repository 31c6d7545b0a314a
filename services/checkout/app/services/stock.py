from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from services.checkout.app.models.cart import CartItem, ProductSnapshot


@dataclass(frozen=True, slots=True)
class AvailabilityStatus:
    item_id: str
    quantity: int
    available_units: int
    out_of_stock: bool
    exceeds_stock: bool
    # Overlaps with exceeds_stock whenever some units remain; informational only.
    low_stock: bool

    @property
    def blocking(self) -> bool:
        return self.out_of_stock or self.exceeds_stock

    @property
    def message(self) -> str | None:
        if self.out_of_stock:
            return "Out of stock"
        if self.exceeds_stock:
            return f"Only {self.available_units} items available in stock"
        return None


@dataclass(frozen=True, slots=True)
class StockReport:
    per_item: Mapping[str, AvailabilityStatus]
    has_blocking_issue: bool

    @property
    def blocking_items(self) -> list[str]:
        return [item_id for item_id, s in self.per_item.items() if s.blocking]


def available_units(product: ProductSnapshot | None) -> int:
    if product is None:
        return 0
    return max(0, product.stock_quantity - (product.reserved_stock or 0))


class StockAvailabilityChecker:
    """Classifies cart lines against the stock fields captured in their product snapshot.

    The snapshot may be stale; the storefront re-checks stock when the order is created.
    """

    def classify(self, item: CartItem) -> AvailabilityStatus:
        return self.classify_quantity(item.item_id, item.quantity, item.product_snapshot)

    def classify_quantity(
        self, item_id: str, quantity: int, product: ProductSnapshot | None
    ) -> AvailabilityStatus:
        units = available_units(product)
        return AvailabilityStatus(
            item_id=str(item_id),
            quantity=quantity,
            available_units=units,
            out_of_stock=units == 0,
            exceeds_stock=quantity > units,
            low_stock=0 < units < quantity,
        )

    def classify_all(self, items: Iterable[CartItem]) -> StockReport:
        per_item = {item.item_id: self.classify(item) for item in items}
        return StockReport(
            per_item=MappingProxyType(per_item),
            has_blocking_issue=any(s.blocking for s in per_item.values()),
        )

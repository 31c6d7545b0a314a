from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class ProductSnapshot(BaseModel):
    """Point-in-time copy of a product's stock fields, as of the last cart fetch."""

    model_config = _WIRE

    id: str
    name: str = ""
    price: Decimal | None = None
    stock_quantity: int = 0
    reserved_stock: int | None = None
    is_imported: bool = False
    packet_size: str | None = None


class CartItem(BaseModel):
    model_config = _WIRE

    item_id: str
    product_id: str
    quantity: int = Field(..., ge=1)
    price_at_add: Decimal
    product_snapshot: ProductSnapshot | None = None

    @property
    def line_total(self) -> Decimal:
        return self.price_at_add * self.quantity


class Cart(BaseModel):
    model_config = _WIRE

    items: list[CartItem] = Field(default_factory=list)

    @computed_field(alias="subtotal")
    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @computed_field(alias="totalItems")
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def has_imported_items(self) -> bool:
        return any(i.product_snapshot is not None and i.product_snapshot.is_imported for i in self.items)

    def find_item(self, item_id: str) -> CartItem | None:
        return next((i for i in self.items if i.item_id == str(item_id)), None)

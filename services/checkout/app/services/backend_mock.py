from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from services.checkout.app.models.address import Address
from services.checkout.app.models.cart import Cart, CartItem, ProductSnapshot
from services.checkout.app.models.order import OrderPlacement
from services.checkout.app.services.backend_base import BackendRejectedError
from services.checkout.app.services.stock import available_units


def _default_catalog() -> dict[str, ProductSnapshot]:
    rows = [
        ("1", "Darjeeling First Flush", "18.50", 40, 0, True, "100g"),
        ("2", "Sencha Kyoto", "12.00", 25, 5, True, "50g"),
        ("3", "English Breakfast", "8.99", 120, 0, False, "250g"),
        ("4", "Chamomile Blossom", "6.50", 3, 1, False, "50g"),
        ("5", "Aged Pu-erh Cake", "42.00", 0, 0, True, "357g"),
    ]
    return {
        pid: ProductSnapshot(
            id=pid,
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
            reserved_stock=reserved,
            is_imported=imported,
            packet_size=packet,
        )
        for pid, name, price, stock, reserved, imported, packet in rows
    }


def _default_addresses() -> list[Address]:
    return [
        Address(
            id="1",
            full_name="Sam Rivera",
            address_line1="12 High St",
            city="Columbus",
            state="OH",
            zip_code="43215",
            phone_number="555-0100",
            is_default=True,
        ),
        Address(
            id="2",
            full_name="Sam Rivera",
            address_line1="400 Market St",
            city="San Francisco",
            state="CA",
            zip_code="94105",
            phone_number="555-0101",
        ),
    ]


class MockStorefrontBackend:
    """In-memory storefront with the same server-side rules as the real one.

    Stock is re-checked on every add/update and again when the order is created, so the
    stale-snapshot race can be reproduced by editing ``products`` between calls.
    """

    name = "MOCK"

    def __init__(
        self,
        products: dict[str, ProductSnapshot] | None = None,
        addresses: list[Address] | None = None,
    ) -> None:
        self.products = products if products is not None else _default_catalog()
        self.addresses = addresses if addresses is not None else _default_addresses()
        self.orders: list[dict] = []
        self._items: list[CartItem] = []
        self._next_item_id = 1

    async def fetch_cart(self) -> Cart:
        return self._snapshot()

    async def add_item(self, product_id: str, quantity: int) -> Cart:
        product = self.products.get(str(product_id))
        if product is None:
            raise BackendRejectedError("Product not found or inactive", 404)

        existing = next((i for i in self._items if i.product_id == str(product_id)), None)
        wanted = quantity + (existing.quantity if existing else 0)
        self._check_stock(product, wanted)

        if existing is not None:
            existing.quantity = wanted
        else:
            self._items.append(
                CartItem(
                    item_id=str(self._next_item_id),
                    product_id=product.id,
                    quantity=quantity,
                    price_at_add=product.price or Decimal("0"),
                )
            )
            self._next_item_id += 1
        return self._snapshot()

    async def update_item(self, item_id: str, quantity: int) -> Cart:
        if quantity < 1:
            raise BackendRejectedError("Quantity must be at least 1", 400)

        item = self._find(item_id)
        self._check_stock(self.products.get(item.product_id), quantity)
        item.quantity = quantity
        return self._snapshot()

    async def remove_item(self, item_id: str) -> Cart:
        self._items.remove(self._find(item_id))
        return self._snapshot()

    async def clear_cart(self) -> Cart:
        self._items = []
        return self._snapshot()

    async def list_addresses(self) -> list[Address]:
        return list(self.addresses)

    async def place_order(self, address_id: str, customer_notes: str | None) -> OrderPlacement:
        if not any(a.id == str(address_id) for a in self.addresses):
            raise BackendRejectedError("Address not found", 404)
        if not self._items:
            raise BackendRejectedError("Cart is empty", 400)

        for item in self._items:
            self._check_stock(self.products.get(item.product_id), item.quantity)

        for item in self._items:
            product = self.products[item.product_id]
            self.products[item.product_id] = product.model_copy(
                update={"reserved_stock": (product.reserved_stock or 0) + item.quantity}
            )

        order_number = f"TH-{datetime.now(timezone.utc).year}-{len(self.orders) + 1:05d}"
        self.orders.append(
            {
                "orderNumber": order_number,
                "addressId": str(address_id),
                "customerNotes": customer_notes,
                "items": [i.model_dump(mode="json", by_alias=True) for i in self._items],
            }
        )
        self._items = []
        return OrderPlacement(order_number=order_number, raw=self.orders[-1])

    async def fetch_product(self, product_id: str) -> ProductSnapshot:
        product = self.products.get(str(product_id))
        if product is None:
            raise BackendRejectedError("Product not found", 404)
        return product

    def _find(self, item_id: str) -> CartItem:
        item = next((i for i in self._items if i.item_id == str(item_id)), None)
        if item is None:
            raise BackendRejectedError("Cart item not found", 404)
        return item

    def _check_stock(self, product: ProductSnapshot | None, quantity: int) -> None:
        units = available_units(product)
        if units < quantity:
            raise BackendRejectedError(f"Only {units} items available in stock", 400)

    def _snapshot(self) -> Cart:
        # Every response carries a fresh copy with the current product snapshot attached.
        return Cart(
            items=[
                i.model_copy(update={"product_snapshot": self.products.get(i.product_id)})
                for i in self._items
            ]
        )

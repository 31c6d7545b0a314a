from __future__ import annotations

from typing import Any, Protocol

from packages.shared.schemas.envelope import EnvelopeV1
from pydantic import ValidationError
from services.checkout.app.models.address import Address
from services.checkout.app.models.cart import Cart, ProductSnapshot
from services.checkout.app.models.order import OrderPlacement


class StorefrontBackendError(Exception):
    """Base class for storefront backend errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BackendTransportError(StorefrontBackendError):
    """Network failure, or a response that could not be decoded as an envelope."""


class BackendRejectedError(StorefrontBackendError):
    """The storefront answered ``success: false``. ``message`` is safe to show verbatim."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorefrontBackend(Protocol):
    """The collaborator boundary. Every call is authenticated and answers a decoded payload."""

    name: str

    async def fetch_cart(self) -> Cart: ...

    async def add_item(self, product_id: str, quantity: int) -> Cart: ...

    async def update_item(self, item_id: str, quantity: int) -> Cart: ...

    async def remove_item(self, item_id: str) -> Cart: ...

    async def clear_cart(self) -> Cart: ...

    async def list_addresses(self) -> list[Address]: ...

    async def place_order(self, address_id: str, customer_notes: str | None) -> OrderPlacement: ...

    async def fetch_product(self, product_id: str) -> ProductSnapshot: ...


def unwrap_envelope(body: Any, status_code: int | None = None) -> Any:
    """Decode a response envelope once; return ``data`` or raise."""

    try:
        envelope = EnvelopeV1.model_validate(body)
    except ValidationError as e:
        raise BackendTransportError(f"Malformed response envelope: {e.error_count()} error(s)") from e

    if not envelope.success:
        raise BackendRejectedError(envelope.message or "Request was rejected", status_code)
    return envelope.data


def _flatten_item(raw: dict[str, Any]) -> dict[str, Any]:
    item = dict(raw)
    if "itemId" not in item and "id" in item:
        item["itemId"] = item.pop("id")
    if "productSnapshot" not in item and "product" in item:
        item["productSnapshot"] = item.pop("product")
    if "productId" not in item and isinstance(item.get("productSnapshot"), dict):
        item["productId"] = item["productSnapshot"].get("id")
    return item


def decode_cart(data: Any) -> Cart:
    """Accept both ``{cart: {items}}`` (storefront) and flat ``{items}`` cart payloads.

    Subtotal and item count are recomputed from the items, so totals sent by the server are
    ignored.
    """

    if data is None:
        return Cart()
    if not isinstance(data, dict):
        raise BackendTransportError("Cart payload is not an object")

    container = data.get("cart") if isinstance(data.get("cart"), dict) else data
    raw_items = container.get("items") or []
    if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
        raise BackendTransportError("Cart items payload is not a list of objects")
    try:
        return Cart.model_validate({"items": [_flatten_item(i) for i in raw_items]})
    except (ValidationError, TypeError, AttributeError) as e:
        raise BackendTransportError(f"Malformed cart payload: {e}") from e


def decode_addresses(data: Any) -> list[Address]:
    if not isinstance(data, list):
        raise BackendTransportError("Address list payload is not a list")
    try:
        return [Address.model_validate(a) for a in data]
    except ValidationError as e:
        raise BackendTransportError(f"Malformed address payload: {e}") from e


def decode_order(data: Any) -> OrderPlacement:
    if not isinstance(data, dict):
        raise BackendTransportError("Order payload is not an object")
    order = data.get("order") if isinstance(data.get("order"), dict) else data
    order_number = order.get("orderNumber")
    if not order_number:
        raise BackendTransportError("Order payload has no orderNumber")
    try:
        return OrderPlacement(order_number=order_number, raw=data)
    except ValidationError as e:
        raise BackendTransportError(f"Malformed order payload: {e}") from e


def decode_product(data: Any) -> ProductSnapshot:
    if not isinstance(data, dict):
        raise BackendTransportError("Product payload is not an object")
    product = data.get("product") if isinstance(data.get("product"), dict) else data
    try:
        return ProductSnapshot.model_validate(product)
    except ValidationError as e:
        raise BackendTransportError(f"Malformed product payload: {e}") from e

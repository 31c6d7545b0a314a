from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from services.checkout.app.models.address import Address
from services.checkout.app.models.cart import Cart, ProductSnapshot
from services.checkout.app.models.order import OrderPlacement
from services.checkout.app.services.backend_base import (
    BackendTransportError,
    decode_addresses,
    decode_cart,
    decode_order,
    decode_product,
    unwrap_envelope,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _HttpConfig:
    base_url: str
    token: str


class HttpStorefrontBackend:
    """Talks to the storefront REST API.

    Env vars:
    - STOREFRONT_BACKEND=http
    - STOREFRONT_API_BASE_URL (default: http://localhost:5000/api)

    No timeout is applied; a stalled request stays pending until it resolves or errors.
    """

    name = "HTTP"

    def __init__(self, cfg: _HttpConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._cfg = cfg
        self._transport = transport

    @classmethod
    def from_env(
        cls, token: str, transport: httpx.AsyncBaseTransport | None = None
    ) -> "HttpStorefrontBackend":
        base_url = os.getenv("STOREFRONT_API_BASE_URL", "http://localhost:5000/api").rstrip("/")
        return cls(_HttpConfig(base_url=base_url, token=token), transport=transport)

    async def fetch_cart(self) -> Cart:
        return decode_cart(await self._call("GET", "/cart"))

    async def add_item(self, product_id: str, quantity: int) -> Cart:
        body = {"productId": product_id, "quantity": quantity}
        return decode_cart(await self._call("POST", "/cart/items", json=body))

    async def update_item(self, item_id: str, quantity: int) -> Cart:
        body = {"quantity": quantity}
        return decode_cart(await self._call("PUT", f"/cart/items/{item_id}", json=body))

    async def remove_item(self, item_id: str) -> Cart:
        return decode_cart(await self._call("DELETE", f"/cart/items/{item_id}"))

    async def clear_cart(self) -> Cart:
        # The storefront answers the cleared cart loosely; an empty snapshot is the contract.
        await self._call("DELETE", "/cart")
        return Cart()

    async def list_addresses(self) -> list[Address]:
        return decode_addresses(await self._call("GET", "/addresses"))

    async def place_order(self, address_id: str, customer_notes: str | None) -> OrderPlacement:
        body = {"addressId": address_id, "customerNotes": customer_notes}
        return decode_order(await self._call("POST", "/orders", json=body))

    async def fetch_product(self, product_id: str) -> ProductSnapshot:
        return decode_product(await self._call("GET", f"/products/{product_id}"))

    async def _call(self, method: str, path: str, json: dict | None = None) -> Any:
        headers = {"Authorization": f"Bearer {self._cfg.token}"}
        try:
            async with httpx.AsyncClient(
                base_url=self._cfg.base_url,
                headers=headers,
                timeout=None,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning("Storefront request failed", method=method, path=path, error=str(e))
            raise BackendTransportError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise BackendTransportError(
                f"{method} {path} answered {response.status_code} without a JSON body"
            ) from e

        return unwrap_envelope(body, status_code=response.status_code)

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest
from services.checkout.app.services.backend_base import (
    BackendRejectedError,
    BackendTransportError,
)
from services.checkout.app.services.backend_http import HttpStorefrontBackend
from services.checkout.app.services.cart_store import CartStore
from services.checkout.app.services.order_submitter import OrderSubmitter
from services.checkout.app.services.outcome import FailureKind


def _backend(handler, monkeypatch: pytest.MonkeyPatch) -> HttpStorefrontBackend:
    monkeypatch.setenv("STOREFRONT_API_BASE_URL", "https://shop.test/api/")
    return HttpStorefrontBackend.from_env("tok-123", transport=httpx.MockTransport(handler))


STOREFRONT_CART = {
    "success": True,
    "data": {
        "cart": {
            "items": [
                {
                    "id": 11,
                    "quantity": 2,
                    "priceAtAdd": "8.99",
                    "product": {
                        "id": 3,
                        "name": "English Breakfast",
                        "price": "8.99",
                        "stockQuantity": 120,
                        "reservedStock": None,
                        "isImported": False,
                    },
                }
            ]
        },
        "subtotal": "999.99",
        "totalItems": 99,
    },
}


@pytest.mark.asyncio
async def test_fetch_cart_sends_bearer_token_and_decodes_nested_cart(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=STOREFRONT_CART)

    cart = await _backend(handler, monkeypatch).fetch_cart()

    assert seen[0].headers["Authorization"] == "Bearer tok-123"
    assert str(seen[0].url) == "https://shop.test/api/cart"
    assert cart.items[0].item_id == "11"
    assert cart.items[0].product_id == "3"
    assert cart.items[0].product_snapshot.reserved_stock is None
    # Totals are derived from the items, not taken from the server.
    assert cart.subtotal == Decimal("17.98")
    assert cart.total_items == 2


@pytest.mark.asyncio
async def test_add_item_posts_camel_case_body(monkeypatch: pytest.MonkeyPatch) -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.method == "POST"
        assert request.url.path == "/api/cart/items"
        return httpx.Response(200, json={"success": True, "data": {"items": []}})

    cart = await _backend(handler, monkeypatch).add_item("3", 2)

    assert bodies == [{"productId": "3", "quantity": 2}]
    assert cart.is_empty


@pytest.mark.asyncio
async def test_rejection_message_is_kept_verbatim(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"success": False, "message": "Only 2 items available in stock"}
        )

    with pytest.raises(BackendRejectedError) as err:
        await _backend(handler, monkeypatch).update_item("11", 5)

    assert err.value.message == "Only 2 items available in stock"
    assert err.value.status_code == 400


@pytest.mark.asyncio
async def test_non_json_body_is_a_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    with pytest.raises(BackendTransportError, match="without a JSON body"):
        await _backend(handler, monkeypatch).fetch_cart()


@pytest.mark.asyncio
async def test_body_without_envelope_is_a_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"items": []})

    with pytest.raises(BackendTransportError, match="Malformed response envelope"):
        await _backend(handler, monkeypatch).fetch_cart()


@pytest.mark.asyncio
async def test_connection_failure_is_a_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendTransportError):
        await _backend(handler, monkeypatch).list_addresses()


@pytest.mark.asyncio
async def test_place_order_reads_nested_order_number(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"addressId": "4", "customerNotes": None}
        return httpx.Response(
            201, json={"success": True, "data": {"order": {"orderNumber": "TH-2026-00042"}}}
        )

    placement = await _backend(handler, monkeypatch).place_order("4", None)
    assert placement.order_number == "TH-2026-00042"


@pytest.mark.asyncio
async def test_addresses_decode_from_camel_case(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [
                    {"id": 9, "fullName": "Sam", "addressLine1": "1 Elm", "state": "wa", "isDefault": True}
                ],
            },
        )

    addresses = await _backend(handler, monkeypatch).list_addresses()

    assert addresses[0].id == "9"
    assert addresses[0].address_line1 == "1 Elm"
    assert addresses[0].is_default


@pytest.mark.asyncio
async def test_clear_cart_answers_empty_snapshot(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        return httpx.Response(200, json={"success": True, "message": "Cart cleared"})

    cart = await _backend(handler, monkeypatch).clear_cart()
    assert cart.items == []
    assert cart.total_items == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        {"items": "oops"},
        {"items": ["o", "k"]},
        {"cart": {"items": [{"id": 1, "quantity": 1, "priceAtAdd": "2"}, 7]}},
        {"items": {"id": 1}},
    ],
)
async def test_malformed_cart_items_become_transport_failures(
    data: dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": data})

    store = CartStore(_backend(handler, monkeypatch))
    outcome = await store.fetch()

    assert outcome.kind is FailureKind.TRANSPORT
    assert outcome.message == "Failed to load cart"
    assert store.snapshot.items == []


@pytest.mark.asyncio
async def test_malformed_order_number_becomes_transport_failure(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"orderNumber": {"x": 1}}})

    backend = _backend(handler, monkeypatch)
    with pytest.raises(BackendTransportError, match="Malformed order payload"):
        await backend.place_order("1", None)

    outcome = await OrderSubmitter(backend, CartStore(backend)).submit("1", None)
    assert outcome.kind is FailureKind.TRANSPORT
    assert outcome.message == "Failed to place order. Please try again."

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "checkout_api.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STOREFRONT_BACKEND", "mock")

    from services.checkout.app.main import app

    with TestClient(app) as c:
        yield c


def _start(client: TestClient, email: str = "sam@example.com") -> str:
    response = client.post("/v1/checkout/sessions", json={"token": "tok", "contactEmail": email})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    return body["data"]["sessionId"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_start_checkout_preselects_default_address(client: TestClient) -> None:
    session_id = _start(client)

    view = client.get(f"/v1/checkout/sessions/{session_id}").json()["data"]

    assert view["state"]["selectedAddressId"] == "1"
    assert view["state"]["contactEmail"] == "sam@example.com"
    assert view["cart"]["items"] == []
    assert view["canPlaceOrder"] is False
    assert view["breakdown"] is None
    assert view["blockingReasons"] == ["Your cart is empty"]


def test_start_checkout_requires_token(client: TestClient) -> None:
    response = client.post("/v1/checkout/sessions", json={"token": ""})
    assert response.status_code == 422


def test_unknown_session_is_404(client: TestClient) -> None:
    response = client.get("/v1/checkout/sessions/missing")
    assert response.status_code == 404


def test_add_item_returns_priced_view(client: TestClient) -> None:
    session_id = _start(client)

    response = client.post(
        f"/v1/checkout/sessions/{session_id}/cart/items", json={"productId": "3", "quantity": 2}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Item added to cart!"
    view = body["data"]
    assert view["cart"]["totalItems"] == 2
    assert view["cart"]["subtotal"] == "17.98"
    assert view["breakdown"] == {
        "subtotal": "17.98",
        "shipping": "5.99",
        "tax": "1.03",
        "total": "25.00",
    }
    assert view["canPlaceOrder"] is True


def test_quantity_below_one_is_422_envelope(client: TestClient) -> None:
    session_id = _start(client)

    response = client.post(
        f"/v1/checkout/sessions/{session_id}/cart/items", json={"productId": "3", "quantity": 0}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Quantity must be at least 1"


def test_storefront_rejection_is_409_with_verbatim_message(client: TestClient) -> None:
    session_id = _start(client)

    response = client.post(
        f"/v1/checkout/sessions/{session_id}/cart/items", json={"productId": "4", "quantity": 5}
    )

    assert response.status_code == 409
    body = response.json()
    assert body["message"] == "Only 2 items available in stock"
    assert body["data"]["cart"]["items"] == []


def test_update_and_remove_item(client: TestClient) -> None:
    session_id = _start(client)
    view = client.post(
        f"/v1/checkout/sessions/{session_id}/cart/items", json={"productId": "1"}
    ).json()["data"]
    item_id = view["cart"]["items"][0]["itemId"]

    updated = client.put(
        f"/v1/checkout/sessions/{session_id}/cart/items/{item_id}", json={"quantity": 3}
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["cart"]["totalItems"] == 3

    removed = client.delete(f"/v1/checkout/sessions/{session_id}/cart/items/{item_id}")
    assert removed.status_code == 200
    assert removed.json()["message"] == "Item removed from cart!"
    assert removed.json()["data"]["cart"]["items"] == []


def test_clear_cart_empties_cart_and_drops_pricing(client: TestClient) -> None:
    session_id = _start(client)
    base = f"/v1/checkout/sessions/{session_id}"
    client.post(f"{base}/cart/items", json={"productId": "3", "quantity": 2})

    response = client.delete(f"{base}/cart")

    assert response.status_code == 200
    view = response.json()["data"]
    assert view["cart"]["items"] == []
    assert view["cart"]["totalItems"] == 0
    assert view["breakdown"] is None
    assert view["blockingReasons"] == ["Your cart is empty"]


def test_unknown_address_is_422(client: TestClient) -> None:
    session_id = _start(client)

    response = client.put(f"/v1/checkout/sessions/{session_id}/address", json={"addressId": "99"})

    assert response.status_code == 422
    assert response.json()["data"]["state"]["selectedAddressId"] == "1"


def test_gate_blocks_order_with_reasons(client: TestClient) -> None:
    session_id = _start(client, email="")

    response = client.post(f"/v1/checkout/sessions/{session_id}/orders")

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["data"]["blockingReasons"] == [
        "Your cart is empty",
        "Please enter your email address",
    ]


def test_full_checkout_flow_places_order(client: TestClient) -> None:
    session_id = _start(client)
    base = f"/v1/checkout/sessions/{session_id}"

    client.post(f"{base}/cart/items", json={"productId": "3", "quantity": 2})
    assert client.put(f"{base}/contact", json={"email": "sam@example.com", "phone": "555"}).status_code == 200
    assert client.put(f"{base}/address", json={"addressId": "2"}).status_code == 200

    express = client.put(f"{base}/shipping-method", json={"method": "express"}).json()["data"]
    assert express["state"]["shippingMethod"] == "express"
    assert express["shippingQuote"]["zone"] == "national"

    assert client.put(f"{base}/payment-method", json={"method": "paypal"}).status_code == 200
    assert client.put(f"{base}/notes", json={"customerNotes": "Side door"}).status_code == 200

    placed = client.post(f"{base}/orders")

    assert placed.status_code == 200
    view = placed.json()["data"]
    assert view["confirmation"]["orderNumber"].startswith("TH-")
    assert view["cart"]["items"] == []
    assert view["breakdown"] is None
    assert view["confirmation"]["breakdown"]["total"] is not None

    # The session is dropped once the order exists.
    assert client.get(base).status_code == 404


def test_order_rejected_by_storefront_is_409(client: TestClient) -> None:
    from services.checkout.app.services.session_store import store

    session_id = _start(client)
    client.post(
        f"/v1/checkout/sessions/{session_id}/cart/items", json={"productId": "3", "quantity": 1}
    )
    store.get(session_id).backend.addresses.clear()

    response = client.post(f"/v1/checkout/sessions/{session_id}/orders")

    assert response.status_code == 409
    assert response.json()["message"] == "Address not found"
    assert client.get(f"/v1/checkout/sessions/{session_id}").status_code == 200


def test_product_availability(client: TestClient) -> None:
    session_id = _start(client)
    base = f"/v1/checkout/sessions/{session_id}/products"

    gone = client.get(f"{base}/5/availability").json()["data"]
    assert gone["availability"]["outOfStock"] is True
    assert gone["availability"]["message"] == "Out of stock"

    short = client.get(f"{base}/4/availability", params={"quantity": 3}).json()["data"]
    assert short["product"]["name"] == "Chamomile Blossom"
    assert short["availability"]["availableUnits"] == 2
    assert short["availability"]["exceedsStock"] is True
    assert short["availability"]["lowStock"] is True

    missing = client.get(f"{base}/404/availability")
    assert missing.status_code == 409
    assert missing.json()["message"] == "Product not found"


def test_abandon_checkout(client: TestClient) -> None:
    session_id = _start(client)

    response = client.delete(f"/v1/checkout/sessions/{session_id}")

    assert response.status_code == 200
    assert client.get(f"/v1/checkout/sessions/{session_id}").status_code == 404

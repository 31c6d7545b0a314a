from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from services.checkout.app.models.cart import Cart
from services.checkout.app.services.backend_base import StorefrontBackend, StorefrontBackendError
from services.checkout.app.services.outcome import Outcome

logger = structlog.get_logger(__name__)

CartListener = Callable[[Cart], None]


class CartStore:
    """Owns the cart snapshot for one shopper session.

    Every mutation round-trips through the backend and, on success, replaces the whole snapshot
    with the server's answer. Nothing is merged or incremented locally. Concurrent calls are not
    serialized here: whichever response resolves last wins.
    """

    def __init__(self, backend: StorefrontBackend) -> None:
        self._backend = backend
        self._snapshot = Cart()
        self._listeners: list[CartListener] = []
        self._pending = 0
        self.error: str | None = None

    @property
    def snapshot(self) -> Cart:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._pending > 0

    def subscribe(self, listener: CartListener) -> None:
        self._listeners.append(listener)

    async def fetch(self) -> Outcome:
        return await self._round_trip(
            "fetch", "Failed to load cart", lambda: self._backend.fetch_cart()
        )

    async def add_item(self, product_id: str, quantity: int = 1) -> Outcome:
        if quantity < 1:
            return self._invalid("Quantity must be at least 1")
        return await self._round_trip(
            "add_item",
            "Failed to add item to cart",
            lambda: self._backend.add_item(str(product_id), quantity),
            message="Item added to cart!",
        )

    async def update_item(self, item_id: str, quantity: int) -> Outcome:
        if quantity < 1:
            return self._invalid("Quantity must be at least 1")
        return await self._round_trip(
            "update_item",
            "Failed to update cart",
            lambda: self._backend.update_item(str(item_id), quantity),
            message="Quantity updated!",
        )

    async def remove_item(self, item_id: str) -> Outcome:
        return await self._round_trip(
            "remove_item",
            "Failed to remove item",
            lambda: self._backend.remove_item(str(item_id)),
            message="Item removed from cart!",
        )

    async def clear(self) -> Outcome:
        return await self._round_trip(
            "clear", "Failed to clear cart", lambda: self._backend.clear_cart()
        )

    def _invalid(self, message: str) -> Outcome:
        self.error = message
        return Outcome.invalid(message)

    async def _round_trip(
        self,
        op: str,
        failure_message: str,
        call: Callable[[], Awaitable[Cart]],
        message: str | None = None,
    ) -> Outcome:
        self._pending += 1
        self.error = None
        try:
            cart = await call()
        except StorefrontBackendError as e:
            outcome = Outcome.from_error(e, failure_message)
            self.error = outcome.message
            logger.warning("Cart mutation failed", op=op, kind=outcome.kind, error=e.message)
            return outcome
        finally:
            self._pending -= 1

        self._replace(cart)
        return Outcome.success(cart, message=message)

    def _replace(self, cart: Cart) -> None:
        self._snapshot = cart
        for listener in self._listeners:
            listener(cart)

from __future__ import annotations

import structlog
from services.checkout.app.services.backend_base import StorefrontBackend, StorefrontBackendError
from services.checkout.app.services.cart_store import CartStore
from services.checkout.app.services.outcome import Outcome

logger = structlog.get_logger(__name__)


class OrderSubmitter:
    """Issues the order-creation call and clears the cart once it succeeds.

    Failures are reported, never retried. A second submit while one is in flight is refused.
    """

    def __init__(self, backend: StorefrontBackend, cart_store: CartStore) -> None:
        self._backend = backend
        self._cart_store = cart_store
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, address_id: str, customer_notes: str | None) -> Outcome:
        if self._in_flight:
            return Outcome.invalid("Order submission already in progress")

        self._in_flight = True
        try:
            placement = await self._backend.place_order(str(address_id), customer_notes or None)
        except StorefrontBackendError as e:
            outcome = Outcome.from_error(e, "Failed to place order. Please try again.")
            logger.warning("Order placement failed", kind=outcome.kind, error=e.message)
            return outcome
        finally:
            self._in_flight = False

        logger.info("Order placed", order_number=placement.order_number)

        cleared = await self._cart_store.clear()
        if not cleared.ok:
            # The order exists either way; the cart view catches up on the next fetch.
            logger.warning(
                "Cart clear after order failed",
                order_number=placement.order_number,
                error=cleared.message,
            )

        return Outcome.success(placement, message=f"Order {placement.order_number} placed")

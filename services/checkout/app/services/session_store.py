from __future__ import annotations

from dataclasses import dataclass

from services.checkout.app.services.backend_base import StorefrontBackend
from services.checkout.app.services.cart_store import CartStore
from services.checkout.app.services.checkout import CheckoutOrchestrator


@dataclass
class CheckoutSession:
    id: str
    backend: StorefrontBackend
    cart_store: CartStore
    checkout: CheckoutOrchestrator


class InMemorySessionStore:
    """Checkout-in-progress lives here only; it is dropped on order placement or exit."""

    def __init__(self) -> None:
        self._sessions: dict[str, CheckoutSession] = {}

    def save(self, session: CheckoutSession) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str) -> CheckoutSession | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> CheckoutSession | None:
        return self._sessions.pop(session_id, None)


store = InMemorySessionStore()

"""Checkout step tracking and the order submission gate.

Steps only record progress (the furthest section reached); a shopper may revisit any section.
What the orchestrator enforces is the gate in ``blocking_reasons``: an order is only sent when
the cart is non-empty, an address from the shopper's book is selected, a contact email is set
and no cart line has a blocking stock issue.

Pricing is recomputed synchronously whenever its inputs change: the selected address state,
the cart subtotal and item count, and the shipping method.
"""

from __future__ import annotations

import structlog
from services.checkout.app.models.address import Address
from services.checkout.app.models.cart import Cart
from services.checkout.app.models.checkout import (
    STEP_ORDER,
    CheckoutState,
    CheckoutStep,
    PaymentMethod,
)
from services.checkout.app.models.order import OrderConfirmation
from services.checkout.app.models.pricing import PricingBreakdown, ShippingMethod, ShippingQuote
from services.checkout.app.services.backend_base import StorefrontBackend, StorefrontBackendError
from services.checkout.app.services.cart_store import CartStore
from services.checkout.app.services.order_submitter import OrderSubmitter
from services.checkout.app.services.outcome import Outcome
from services.checkout.app.services.pricing import PricingEngine
from services.checkout.app.services.stock import StockAvailabilityChecker, StockReport

logger = structlog.get_logger(__name__)

REASON_EMPTY_CART = "Your cart is empty"
REASON_NO_ADDRESS = "Please select a shipping address"
REASON_NO_EMAIL = "Please enter your email address"
REASON_STOCK = "Please resolve stock issues before placing your order"

_PricingKey = tuple[str, object, int, ShippingMethod]


class CheckoutOrchestrator:
    def __init__(
        self,
        backend: StorefrontBackend,
        cart_store: CartStore,
        submitter: OrderSubmitter | None = None,
        pricing: PricingEngine | None = None,
        checker: StockAvailabilityChecker | None = None,
        contact_email: str = "",
    ) -> None:
        self._backend = backend
        self._cart_store = cart_store
        self._submitter = submitter or OrderSubmitter(backend, cart_store)
        self._pricing = pricing or PricingEngine()
        self._checker = checker or StockAvailabilityChecker()

        self.state = CheckoutState(contact_email=contact_email.strip())
        self.addresses: list[Address] = []
        self.breakdown: PricingBreakdown | None = None
        self.shipping_quote: ShippingQuote | None = None
        self.confirmation: OrderConfirmation | None = None
        self.error: str | None = None
        self._pricing_key: _PricingKey | None = None

        cart_store.subscribe(self._on_cart_changed)

    @property
    def cart(self) -> Cart:
        return self._cart_store.snapshot

    @property
    def completed(self) -> bool:
        return self.confirmation is not None

    @property
    def selected_address(self) -> Address | None:
        address_id = self.state.selected_address_id
        if address_id is None:
            return None
        return next((a for a in self.addresses if a.id == address_id), None)

    # -------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------
    async def load_addresses(self) -> Outcome:
        try:
            self.addresses = await self._backend.list_addresses()
        except StorefrontBackendError as e:
            outcome = Outcome.from_error(e, "Failed to load addresses")
            self.error = outcome.message
            return outcome

        if self.selected_address is None:
            preferred = next((a for a in self.addresses if a.is_default), None)
            if preferred is None and self.addresses:
                preferred = self.addresses[0]
            self.state.selected_address_id = preferred.id if preferred else None

        self.refresh_pricing()
        return Outcome.success(self.addresses)

    def set_contact(self, email: str, phone: str = "") -> Outcome:
        self.state.contact_email = (email or "").strip()
        self.state.contact_phone = (phone or "").strip()
        if not self.state.contact_email:
            return Outcome.invalid(REASON_NO_EMAIL)
        self._reach(CheckoutStep.ADDRESS)
        return Outcome.success()

    def select_address(self, address_id: str) -> Outcome:
        if not any(a.id == str(address_id) for a in self.addresses):
            return Outcome.invalid(REASON_NO_ADDRESS)
        self.state.selected_address_id = str(address_id)
        self._reach(CheckoutStep.SHIPPING_METHOD)
        self.refresh_pricing()
        return Outcome.success()

    def set_shipping_method(self, method: ShippingMethod | str) -> Outcome:
        try:
            self.state.shipping_method = ShippingMethod(method)
        except ValueError:
            return Outcome.invalid(f"Unknown shipping method: {method}")
        self._reach(CheckoutStep.PAYMENT)
        self.refresh_pricing()
        return Outcome.success()

    def set_payment_method(self, method: PaymentMethod | str) -> Outcome:
        try:
            self.state.payment_method = PaymentMethod(method)
        except ValueError:
            return Outcome.invalid(f"Unknown payment method: {method}")
        self._reach(CheckoutStep.NOTES)
        return Outcome.success()

    def set_customer_notes(self, notes: str) -> Outcome:
        self.state.customer_notes = notes or ""
        self._reach(CheckoutStep.NOTES)
        return Outcome.success()

    def go_to(self, step: CheckoutStep) -> None:
        self.state.step = step
        self._reach(step, move=False)

    def _reach(self, step: CheckoutStep, move: bool = True) -> None:
        if move:
            self.state.step = step
        if STEP_ORDER.index(step) > STEP_ORDER.index(self.state.furthest_step):
            self.state.furthest_step = step

    # -------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------
    def stock_report(self) -> StockReport:
        return self._checker.classify_all(self.cart.items)

    def refresh_pricing(self) -> PricingBreakdown | None:
        address = self.selected_address
        # Nothing to price without a destination or without items.
        if address is None or self.cart.is_empty:
            self.breakdown = None
            self.shipping_quote = None
            self._pricing_key = None
            return None

        cart = self.cart
        key: _PricingKey = (address.state, cart.subtotal, cart.total_items, self.state.shipping_method)
        if key == self._pricing_key and self.breakdown is not None:
            return self.breakdown

        self.breakdown = self._pricing.compute_breakdown(
            cart.subtotal, address.state, cart.total_items, self.state.shipping_method
        )
        self.shipping_quote = self._pricing.compute_quote(
            address.state,
            cart.subtotal,
            cart.total_items,
            self.state.shipping_method,
            has_imported_items=cart.has_imported_items,
        )
        self._pricing_key = key
        return self.breakdown

    def _on_cart_changed(self, cart: Cart) -> None:
        del cart
        self.refresh_pricing()

    def blocking_reasons(self) -> list[str]:
        reasons: list[str] = []
        if self.cart.is_empty:
            reasons.append(REASON_EMPTY_CART)
        if self.selected_address is None:
            reasons.append(REASON_NO_ADDRESS)
        if not self.state.contact_email:
            reasons.append(REASON_NO_EMAIL)
        if self.stock_report().has_blocking_issue:
            reasons.append(REASON_STOCK)
        return reasons

    @property
    def can_place_order(self) -> bool:
        return not self.blocking_reasons()

    # -------------------------------------------------------------------
    # Terminal action
    # -------------------------------------------------------------------
    async def place_order(self) -> Outcome:
        if self.completed:
            return Outcome.invalid("This order has already been placed")

        reasons = self.blocking_reasons()
        if reasons:
            logger.info("Order blocked at gate", reasons=reasons)
            self.error = reasons[0]
            return Outcome.invalid(reasons[0], reasons)

        breakdown = self.refresh_pricing()
        self.error = None
        outcome = await self._submitter.submit(
            self.state.selected_address_id, self.state.customer_notes
        )
        if not outcome.ok:
            self.error = outcome.message
            return outcome

        self.confirmation = OrderConfirmation(
            order_number=outcome.value.order_number,
            breakdown=breakdown.rounded() if breakdown is not None else None,
        )
        return outcome

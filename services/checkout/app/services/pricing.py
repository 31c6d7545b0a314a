"""Shipping and tax pricing.

Shipping depends on the destination zone (resolved from the two-letter state code) and the
shipping method. Express always costs something, even when standard shipping would be free:
a free standard order is priced as if standard cost the express floor.

Tax applies to the subtotal only; shipping is never taxed.

Nothing here raises on bad input. An unknown or empty state prices as the default zone with
the default tax rate.
"""

from __future__ import annotations

from decimal import Decimal

from services.checkout.app.models.pricing import (
    PricingBreakdown,
    ShippingMethod,
    ShippingQuote,
    ShippingZone,
)
from services.checkout.app.services.pricing_tables import PricingTables, default_pricing_tables

_ZERO = Decimal("0")


def _money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return _ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError:
        return _ZERO
    # NaN and infinities cannot be compared against thresholds.
    return amount if amount.is_finite() else _ZERO


def _method(method: ShippingMethod | str | None) -> ShippingMethod:
    try:
        return ShippingMethod(method or ShippingMethod.STANDARD)
    except ValueError:
        return ShippingMethod.STANDARD


class PricingEngine:
    def __init__(self, tables: PricingTables | None = None) -> None:
        self._tables = tables or default_pricing_tables()

    @property
    def tables(self) -> PricingTables:
        return self._tables

    def zone_for(self, state: str | None) -> ShippingZone:
        return self._tables.zone_for(state)

    def tax_rate(self, state: str | None) -> Decimal:
        return self._tables.tax_rate_for(state)

    def compute_standard_shipping(
        self, state: str | None, subtotal: Decimal, item_count: int
    ) -> Decimal:
        rate = self._tables.zone_rates[self.zone_for(state)]
        if _money(subtotal) >= rate.free_threshold:
            return _ZERO
        return rate.base + rate.per_item * max(int(item_count or 0), 0)

    def compute_shipping(
        self,
        state: str | None,
        subtotal: Decimal,
        item_count: int,
        method: ShippingMethod | str = ShippingMethod.STANDARD,
    ) -> Decimal:
        standard = self.compute_standard_shipping(state, subtotal, item_count)
        if _method(method) is ShippingMethod.STANDARD:
            return standard

        express = self._tables.express
        charged = express.free_floor if standard == 0 else standard
        return charged * express.multiplier + express.surcharge

    def compute_tax(self, state: str | None, subtotal: Decimal) -> Decimal:
        return _money(subtotal) * self.tax_rate(state)

    def compute_breakdown(
        self,
        subtotal: Decimal,
        state: str | None,
        item_count: int,
        method: ShippingMethod | str = ShippingMethod.STANDARD,
    ) -> PricingBreakdown:
        subtotal = _money(subtotal)
        return PricingBreakdown.of(
            subtotal=subtotal,
            shipping=self.compute_shipping(state, subtotal, item_count, method),
            tax=self.compute_tax(state, subtotal),
        )

    def compute_quote(
        self,
        state: str | None,
        subtotal: Decimal,
        item_count: int,
        method: ShippingMethod | str = ShippingMethod.STANDARD,
        has_imported_items: bool = False,
    ) -> ShippingQuote:
        subtotal = _money(subtotal)
        method = _method(method)
        zone = self.zone_for(state)
        rate = self._tables.zone_rates[zone]

        standard = self.compute_standard_shipping(state, subtotal, item_count)
        free = standard == 0
        waived = rate.base + rate.per_item * max(int(item_count or 0), 0) if free else _ZERO

        if has_imported_items:
            days = self._tables.imported_days
        elif method is ShippingMethod.EXPRESS:
            days = self._tables.express.estimated_days
        else:
            days = self._tables.zone_days[zone]

        return ShippingQuote(
            zone=zone,
            method=method,
            cost=self.compute_shipping(state, subtotal, item_count, method),
            free_shipping=free and method is ShippingMethod.STANDARD,
            free_shipping_threshold=rate.free_threshold,
            amount_for_free_shipping=max(_ZERO, rate.free_threshold - subtotal),
            savings=waived if method is ShippingMethod.STANDARD else _ZERO,
            estimated_days=days,
        )

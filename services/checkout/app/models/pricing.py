from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

CENTS = Decimal("0.01")


class ShippingZone(str, Enum):
    LOCAL = "local"
    REGIONAL = "regional"
    NATIONAL = "national"
    REMOTE = "remote"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingBreakdown(BaseModel):
    """Derived price tuple. Carries full precision; call ``rounded()`` for display."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    @classmethod
    def of(cls, subtotal: Decimal, shipping: Decimal, tax: Decimal) -> "PricingBreakdown":
        return cls(subtotal=subtotal, shipping=shipping, tax=tax, total=subtotal + shipping + tax)

    def rounded(self) -> "PricingBreakdown":
        return PricingBreakdown(
            subtotal=to_cents(self.subtotal),
            shipping=to_cents(self.shipping),
            tax=to_cents(self.tax),
            total=to_cents(self.total),
        )


class ShippingQuote(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    zone: ShippingZone
    method: ShippingMethod
    cost: Decimal
    free_shipping: bool
    free_shipping_threshold: Decimal
    amount_for_free_shipping: Decimal
    savings: Decimal
    estimated_days: int

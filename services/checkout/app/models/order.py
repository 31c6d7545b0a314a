from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from services.checkout.app.models.pricing import PricingBreakdown


class OrderPlacement(BaseModel):
    """What the storefront answers to an order-creation call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    order_number: str
    raw: dict[str, Any] = Field(default_factory=dict)


class OrderConfirmation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_number: str
    breakdown: PricingBreakdown | None = None


class OrderReceiptOut(BaseModel):
    id: str
    session_id: str
    order_number: str
    address_id: str
    subtotal: str | None = None
    shipping: str | None = None
    tax: str | None = None
    total: str | None = None
    created_at: str


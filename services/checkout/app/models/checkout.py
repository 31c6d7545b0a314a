from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from services.checkout.app.models.address import Address
from services.checkout.app.models.cart import Cart
from services.checkout.app.models.order import OrderConfirmation
from services.checkout.app.models.pricing import PricingBreakdown, ShippingMethod, ShippingQuote


class CheckoutStep(str, Enum):
    CONTACT = "contact"
    ADDRESS = "address"
    SHIPPING_METHOD = "shippingMethod"
    PAYMENT = "payment"
    NOTES = "notes"


STEP_ORDER: tuple[CheckoutStep, ...] = tuple(CheckoutStep)


class PaymentMethod(str, Enum):
    CARD = "card"
    PAYPAL = "paypal"
    APPLEPAY = "applepay"


class CheckoutState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step: CheckoutStep = CheckoutStep.CONTACT
    furthest_step: CheckoutStep = CheckoutStep.CONTACT
    selected_address_id: str | None = None
    contact_email: str = ""
    contact_phone: str = ""
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    payment_method: PaymentMethod = PaymentMethod.CARD
    customer_notes: str = ""


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class StartCheckoutRequest(_Body):
    token: str = Field(..., min_length=1)
    contact_email: str = ""


class ContactUpdate(_Body):
    email: str = ""
    phone: str = ""


class AddressSelection(_Body):
    address_id: str


class ShippingMethodSelection(_Body):
    method: ShippingMethod


class PaymentMethodSelection(_Body):
    method: PaymentMethod


class NotesUpdate(_Body):
    customer_notes: str = ""


class AddItemRequest(_Body):
    product_id: str
    quantity: int = 1


class UpdateItemRequest(_Body):
    quantity: int


class StockLine(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_id: str
    quantity: int
    available_units: int
    out_of_stock: bool
    exceeds_stock: bool
    low_stock: bool
    message: str | None = None


class CheckoutView(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    state: CheckoutState
    cart: Cart
    addresses: list[Address] = Field(default_factory=list)
    stock: list[StockLine] = Field(default_factory=list)
    has_blocking_issue: bool = False
    breakdown: PricingBreakdown | None = None
    shipping_quote: ShippingQuote | None = None
    can_place_order: bool = False
    blocking_reasons: list[str] = Field(default_factory=list)
    confirmation: OrderConfirmation | None = None

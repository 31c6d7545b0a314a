"""Shared checkout event schema (v1).

The checkout service stores an append-only event log. Clients can consume these events to
render an order-attempt trail.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    CHECKOUT_SESSION = "CheckoutSession"
    CART = "Cart"
    ORDER = "Order"


class EventTypeV1(str, Enum):
    CHECKOUT_STARTED = "CHECKOUT_STARTED"
    CHECKOUT_ABANDONED = "CHECKOUT_ABANDONED"
    CART_MUTATION_FAILED = "CART_MUTATION_FAILED"
    ORDER_BLOCKED = "ORDER_BLOCKED"
    ORDER_PLACED = "ORDER_PLACED"
    ORDER_FAILED = "ORDER_FAILED"


class EventV1(BaseModel):
    id: str
    session_id: str

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str

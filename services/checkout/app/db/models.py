from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CheckoutEvent(Base):
    """Append-only trail of checkout attempts. Checkout state itself is never stored."""

    __tablename__ = "checkout_events"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    session_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    event_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class OrderReceipt(Base):
    __tablename__ = "order_receipts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    session_id: Mapped[str] = mapped_column(String, nullable=False)
    order_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    address_id: Mapped[str] = mapped_column(String, nullable=False)

    # Presentation-rounded amounts, stored as decimal strings.
    subtotal: Mapped[str | None] = mapped_column(String, nullable=True)
    shipping: Mapped[str | None] = mapped_column(String, nullable=True)
    tax: Mapped[str | None] = mapped_column(String, nullable=True)
    total: Mapped[str | None] = mapped_column(String, nullable=True)

    event_id: Mapped[str | None] = mapped_column(ForeignKey("checkout_events.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1, EventV1
from services.checkout.app.db.deps import get_db
from services.checkout.app.db.models import CheckoutEvent, OrderReceipt
from services.checkout.app.models.order import OrderReceiptOut
from sqlalchemy.orm import Session

router = APIRouter()


def _receipt_out(row: OrderReceipt) -> OrderReceiptOut:
    return OrderReceiptOut(
        id=row.id,
        session_id=row.session_id,
        order_number=row.order_number,
        address_id=row.address_id,
        subtotal=row.subtotal,
        shipping=row.shipping,
        tax=row.tax,
        total=row.total,
        created_at=row.created_at.isoformat(),
    )


@router.get("/v1/checkout/events", response_model=list[EventV1])
def list_events(session_id: str | None = None, db: Session = Depends(get_db)) -> list[EventV1]:
    query = db.query(CheckoutEvent)
    if session_id:
        query = query.filter(CheckoutEvent.session_id == session_id)
    rows = query.order_by(CheckoutEvent.created_at.asc()).limit(500).all()

    return [
        EventV1(
            id=row.id,
            session_id=row.session_id,
            entity_type=EntityTypeV1(row.entity_type),
            entity_id=row.entity_id,
            event_type=EventTypeV1(row.event_type),
            payload=row.event_payload_json or {},
            created_at=row.created_at.isoformat(),
        )
        for row in rows
    ]


@router.get("/v1/orders/receipts", response_model=list[OrderReceiptOut])
def list_receipts(db: Session = Depends(get_db)) -> list[OrderReceiptOut]:
    rows = db.query(OrderReceipt).order_by(OrderReceipt.created_at.desc()).limit(200).all()
    return [_receipt_out(r) for r in rows]


@router.get("/v1/orders/receipts/{order_number}", response_model=OrderReceiptOut)
def get_receipt(order_number: str, db: Session = Depends(get_db)) -> OrderReceiptOut:
    row = db.query(OrderReceipt).filter(OrderReceipt.order_number == order_number).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return _receipt_out(row)

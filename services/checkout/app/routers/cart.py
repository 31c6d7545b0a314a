from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from packages.shared.schemas.envelope import EnvelopeV1
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.checkout.app.db.deps import get_db
from services.checkout.app.models.checkout import AddItemRequest, StockLine, UpdateItemRequest
from services.checkout.app.routers.common import (
    dump,
    get_session_or_404,
    respond,
    session_view,
)
from services.checkout.app.services.backend_base import StorefrontBackendError
from services.checkout.app.services.event_log import log_event
from services.checkout.app.services.outcome import FailureKind, Outcome
from services.checkout.app.services.session_store import CheckoutSession
from services.checkout.app.services.stock import StockAvailabilityChecker
from sqlalchemy.orm import Session

router = APIRouter()


def _record_failure(db: Session, session: CheckoutSession, op: str, outcome: Outcome) -> None:
    # Client-side validation never reached the storefront; only log real round-trip failures.
    if outcome.ok or outcome.kind is FailureKind.VALIDATION:
        return
    log_event(
        db,
        session_id=session.id,
        entity_type=EntityTypeV1.CART,
        entity_id=session.id,
        event_type=EventTypeV1.CART_MUTATION_FAILED,
        event_payload={"op": op, "kind": outcome.kind.value, "message": outcome.message},
    )
    db.commit()


@router.post("/v1/checkout/sessions/{session_id}/cart/refresh", response_model=EnvelopeV1)
async def refresh_cart(
    session_id: str, response: Response, db: Session = Depends(get_db)
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.cart_store.fetch()
    _record_failure(db, session, "fetch", outcome)
    return respond(response, outcome, dump(session_view(session)))


@router.post("/v1/checkout/sessions/{session_id}/cart/items", response_model=EnvelopeV1)
async def add_cart_item(
    session_id: str,
    payload: AddItemRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.cart_store.add_item(payload.product_id, payload.quantity)
    _record_failure(db, session, "add_item", outcome)
    return respond(response, outcome, dump(session_view(session)))


@router.put("/v1/checkout/sessions/{session_id}/cart/items/{item_id}", response_model=EnvelopeV1)
async def update_cart_item(
    session_id: str,
    item_id: str,
    payload: UpdateItemRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.cart_store.update_item(item_id, payload.quantity)
    _record_failure(db, session, "update_item", outcome)
    return respond(response, outcome, dump(session_view(session)))


@router.delete(
    "/v1/checkout/sessions/{session_id}/cart/items/{item_id}", response_model=EnvelopeV1
)
async def remove_cart_item(
    session_id: str, item_id: str, response: Response, db: Session = Depends(get_db)
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.cart_store.remove_item(item_id)
    _record_failure(db, session, "remove_item", outcome)
    return respond(response, outcome, dump(session_view(session)))


@router.delete("/v1/checkout/sessions/{session_id}/cart", response_model=EnvelopeV1)
async def clear_cart(
    session_id: str, response: Response, db: Session = Depends(get_db)
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.cart_store.clear()
    _record_failure(db, session, "clear", outcome)
    return respond(response, outcome, dump(session_view(session)))


@router.get(
    "/v1/checkout/sessions/{session_id}/products/{product_id}/availability",
    response_model=EnvelopeV1,
)
async def product_availability(
    session_id: str,
    product_id: str,
    response: Response,
    quantity: int = Query(1, ge=1),
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    try:
        product = await session.backend.fetch_product(product_id)
    except StorefrontBackendError as e:
        return respond(response, Outcome.from_error(e, "Failed to load product"))

    status = StockAvailabilityChecker().classify_quantity(product_id, quantity, product)
    line = StockLine(
        item_id=status.item_id,
        quantity=status.quantity,
        available_units=status.available_units,
        out_of_stock=status.out_of_stock,
        exceeds_stock=status.exceeds_stock,
        low_stock=status.low_stock,
        message=status.message,
    )
    return EnvelopeV1.ok({"product": dump(product), "availability": dump(line)})

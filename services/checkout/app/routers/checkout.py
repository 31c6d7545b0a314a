from __future__ import annotations

from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from packages.shared.schemas.envelope import EnvelopeV1
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.checkout.app.db.deps import get_db
from services.checkout.app.db.models import OrderReceipt
from services.checkout.app.models.checkout import (
    AddressSelection,
    ContactUpdate,
    NotesUpdate,
    PaymentMethodSelection,
    ShippingMethodSelection,
    StartCheckoutRequest,
)
from services.checkout.app.routers.common import (
    dump,
    get_session_or_404,
    respond,
    session_view,
)
from services.checkout.app.services.backend_factory import get_storefront_backend
from services.checkout.app.services.cart_store import CartStore
from services.checkout.app.services.checkout import CheckoutOrchestrator
from services.checkout.app.services.event_log import log_event
from services.checkout.app.services.outcome import FailureKind
from services.checkout.app.services.session_store import CheckoutSession, store
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/v1/checkout/sessions", response_model=EnvelopeV1)
async def start_checkout(
    payload: StartCheckoutRequest, response: Response, db: Session = Depends(get_db)
) -> EnvelopeV1:
    try:
        backend = get_storefront_backend(payload.token)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    cart_store = CartStore(backend)
    session = CheckoutSession(
        id=uuid4().hex,
        backend=backend,
        cart_store=cart_store,
        checkout=CheckoutOrchestrator(backend, cart_store, contact_email=payload.contact_email),
    )

    fetched = await cart_store.fetch()
    if not fetched.ok:
        return respond(response, fetched)

    # An unreachable address book still lets the shopper in; the gate reports the gap.
    loaded = await session.checkout.load_addresses()
    if not loaded.ok:
        logger.warning("Address book unavailable at checkout start", error=loaded.message)

    store.save(session)
    log_event(
        db,
        session_id=session.id,
        entity_type=EntityTypeV1.CHECKOUT_SESSION,
        entity_id=session.id,
        event_type=EventTypeV1.CHECKOUT_STARTED,
        event_payload={"backend": backend.name, "total_items": cart_store.snapshot.total_items},
    )
    db.commit()

    return EnvelopeV1.ok(dump(session_view(session)))


@router.get("/v1/checkout/sessions/{session_id}", response_model=EnvelopeV1)
def get_checkout(session_id: str) -> EnvelopeV1:
    return EnvelopeV1.ok(dump(session_view(get_session_or_404(session_id))))


@router.delete("/v1/checkout/sessions/{session_id}", response_model=EnvelopeV1)
def abandon_checkout(session_id: str, db: Session = Depends(get_db)) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    store.discard(session_id)

    log_event(
        db,
        session_id=session_id,
        entity_type=EntityTypeV1.CHECKOUT_SESSION,
        entity_id=session_id,
        event_type=EventTypeV1.CHECKOUT_ABANDONED,
        event_payload={"furthest_step": session.checkout.state.furthest_step.value},
    )
    db.commit()
    return EnvelopeV1.ok(message="Checkout discarded")


@router.put("/v1/checkout/sessions/{session_id}/contact", response_model=EnvelopeV1)
def update_contact(session_id: str, payload: ContactUpdate, response: Response) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = session.checkout.set_contact(payload.email, payload.phone)
    return respond(response, outcome, dump(session_view(session)))


@router.put("/v1/checkout/sessions/{session_id}/address", response_model=EnvelopeV1)
def select_address(session_id: str, payload: AddressSelection, response: Response) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = session.checkout.select_address(payload.address_id)
    return respond(response, outcome, dump(session_view(session)))


@router.post("/v1/checkout/sessions/{session_id}/addresses/refresh", response_model=EnvelopeV1)
async def refresh_addresses(session_id: str, response: Response) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = await session.checkout.load_addresses()
    return respond(response, outcome, dump(session_view(session)))


@router.put("/v1/checkout/sessions/{session_id}/shipping-method", response_model=EnvelopeV1)
def select_shipping_method(
    session_id: str, payload: ShippingMethodSelection, response: Response
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = session.checkout.set_shipping_method(payload.method)
    return respond(response, outcome, dump(session_view(session)))


@router.put("/v1/checkout/sessions/{session_id}/payment-method", response_model=EnvelopeV1)
def select_payment_method(
    session_id: str, payload: PaymentMethodSelection, response: Response
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = session.checkout.set_payment_method(payload.method)
    return respond(response, outcome, dump(session_view(session)))


@router.put("/v1/checkout/sessions/{session_id}/notes", response_model=EnvelopeV1)
def update_notes(session_id: str, payload: NotesUpdate, response: Response) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    outcome = session.checkout.set_customer_notes(payload.customer_notes)
    return respond(response, outcome, dump(session_view(session)))


@router.post("/v1/checkout/sessions/{session_id}/orders", response_model=EnvelopeV1)
async def place_order(
    session_id: str, response: Response, db: Session = Depends(get_db)
) -> EnvelopeV1:
    session = get_session_or_404(session_id)
    checkout = session.checkout
    address_id = checkout.state.selected_address_id

    outcome = await checkout.place_order()
    view = session_view(session)

    if not outcome.ok:
        blocked = outcome.kind is FailureKind.VALIDATION
        log_event(
            db,
            session_id=session_id,
            entity_type=EntityTypeV1.CHECKOUT_SESSION,
            entity_id=session_id,
            event_type=EventTypeV1.ORDER_BLOCKED if blocked else EventTypeV1.ORDER_FAILED,
            event_payload={"reasons": list(outcome.reasons), "kind": outcome.kind.value},
        )
        db.commit()
        return respond(response, outcome, dump(view))

    confirmation = checkout.confirmation
    breakdown = confirmation.breakdown
    event = log_event(
        db,
        session_id=session_id,
        entity_type=EntityTypeV1.ORDER,
        entity_id=confirmation.order_number,
        event_type=EventTypeV1.ORDER_PLACED,
        event_payload={"address_id": address_id, "total": str(breakdown.total) if breakdown else None},
    )
    db.add(
        OrderReceipt(
            id=uuid4().hex,
            session_id=session_id,
            order_number=confirmation.order_number,
            address_id=str(address_id),
            subtotal=str(breakdown.subtotal) if breakdown else None,
            shipping=str(breakdown.shipping) if breakdown else None,
            tax=str(breakdown.tax) if breakdown else None,
            total=str(breakdown.total) if breakdown else None,
            event_id=event.id,
        )
    )
    db.commit()

    store.discard(session_id)
    return respond(response, outcome, dump(view))

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Response
from packages.shared.schemas.envelope import EnvelopeV1
from services.checkout.app.models.checkout import CheckoutView, StockLine
from services.checkout.app.services.outcome import FailureKind, Outcome
from services.checkout.app.services.session_store import CheckoutSession, store
from services.checkout.app.utils.logging import bind_session

_FAILURE_STATUS = {
    FailureKind.VALIDATION: 422,
    FailureKind.REJECTED: 409,
    FailureKind.TRANSPORT: 502,
}


def get_session_or_404(session_id: str) -> CheckoutSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Checkout session not found")
    bind_session(session_id)
    return session


def session_view(session: CheckoutSession) -> CheckoutView:
    checkout = session.checkout
    report = checkout.stock_report()
    breakdown = checkout.refresh_pricing()

    return CheckoutView(
        session_id=session.id,
        state=checkout.state,
        cart=checkout.cart,
        addresses=checkout.addresses,
        stock=[
            StockLine(
                item_id=s.item_id,
                quantity=s.quantity,
                available_units=s.available_units,
                out_of_stock=s.out_of_stock,
                exceeds_stock=s.exceeds_stock,
                low_stock=s.low_stock,
                message=s.message,
            )
            for s in report.per_item.values()
        ],
        has_blocking_issue=report.has_blocking_issue,
        breakdown=breakdown.rounded() if breakdown is not None else None,
        shipping_quote=checkout.shipping_quote,
        can_place_order=checkout.can_place_order,
        blocking_reasons=checkout.blocking_reasons(),
        confirmation=checkout.confirmation,
    )


def dump(model: Any) -> Any:
    return model.model_dump(mode="json", by_alias=True)


def respond(response: Response, outcome: Outcome, data: Any = None) -> EnvelopeV1:
    if outcome.ok:
        return EnvelopeV1.ok(data, outcome.message)

    response.status_code = _FAILURE_STATUS.get(outcome.kind, 400)
    return EnvelopeV1.fail(outcome.message or "Request failed", data)

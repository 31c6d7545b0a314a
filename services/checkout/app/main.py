"""Checkout service entrypoint."""

from fastapi import FastAPI, Request

from services.checkout.app.db.init_db import init_db
from services.checkout.app.routers.audit import router as audit_router
from services.checkout.app.routers.cart import router as cart_router
from services.checkout.app.routers.checkout import router as checkout_router
from services.checkout.app.utils.logging import clear_context, configure_logging

app = FastAPI(title="Storefront Checkout")

app.include_router(checkout_router)
app.include_router(cart_router)
app.include_router(audit_router)


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    init_db()


@app.middleware("http")
async def _fresh_log_context(request: Request, call_next):
    # Session ids bound by one request must not leak into the next.
    clear_context()
    return await call_next(request)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}

from __future__ import annotations

import os

import structlog
from services.checkout.app.db.database import get_engine
from services.checkout.app.db.models import Base
from sqlalchemy import inspect

logger = structlog.get_logger(__name__)


def auto_create_enabled() -> bool:
    return os.getenv("STOREFRONT_DB_AUTO_CREATE", "true").strip().lower() in {"1", "true", "yes", "y"}


def init_db() -> list[str]:
    """Create the audit tables that are missing; return the names of the ones created."""

    if not auto_create_enabled():
        logger.info("Audit table auto-create disabled")
        return []

    engine = get_engine()
    existing = set(inspect(engine).get_table_names())
    Base.metadata.create_all(bind=engine)

    created = [t for t in Base.metadata.tables if t not in existing]
    if created:
        logger.info("Audit tables created", tables=created)
    return created

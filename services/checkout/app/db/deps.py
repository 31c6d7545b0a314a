from __future__ import annotations

from collections.abc import Generator

from services.checkout.app.db.database import db_session
from sqlalchemy.orm import Session


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session. Uncommitted audit rows are rolled back if the route fails."""

    db = db_session()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

"""Uniform response envelope (v1).

Every storefront endpoint, and every checkout service route, answers with this shape.
Clients check ``success`` first and only then read ``data``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class EnvelopeV1(BaseModel):
    success: bool
    data: Any = None
    message: str | None = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> "EnvelopeV1":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str, data: Any = None) -> "EnvelopeV1":
        return cls(success=False, data=data, message=message)

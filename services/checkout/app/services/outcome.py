from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from services.checkout.app.services.backend_base import (
    BackendRejectedError,
    StorefrontBackendError,
)


class FailureKind(str, Enum):
    VALIDATION = "VALIDATION"
    TRANSPORT = "TRANSPORT"
    REJECTED = "REJECTED"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a core operation. Failures carry a user-facing message, never an exception."""

    ok: bool
    message: str | None = None
    kind: FailureKind | None = None
    reasons: tuple[str, ...] = ()
    value: Any = field(default=None, compare=False)

    @classmethod
    def success(cls, value: Any = None, message: str | None = None) -> "Outcome":
        return cls(ok=True, message=message, value=value)

    @classmethod
    def invalid(cls, message: str, reasons: tuple[str, ...] | list[str] = ()) -> "Outcome":
        return cls(
            ok=False,
            message=message,
            kind=FailureKind.VALIDATION,
            reasons=tuple(reasons) or (message,),
        )

    @classmethod
    def from_error(cls, err: StorefrontBackendError, fallback: str) -> "Outcome":
        # Business rejections are shown verbatim; transport problems get a generic message.
        if isinstance(err, BackendRejectedError):
            message = err.message or fallback
            return cls(ok=False, message=message, kind=FailureKind.REJECTED, reasons=(message,))
        return cls(ok=False, message=fallback, kind=FailureKind.TRANSPORT, reasons=(fallback,))

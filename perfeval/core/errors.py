"""
Outcome taxonomy for core operations.

Expected, recoverable outcomes (not authorized, not permitted, invalid state,
validation failed) are returned as an OpResult so callers can branch without
unwinding. A failed atomic save is the only thing raised: UnrecoverableError.

NOT_AUTHORIZED covers both "does not exist" and "exists but not visible to this
principal" so callers cannot probe for existence.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class Outcome(str, enum.Enum):
    OK = "OK"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    NOT_PERMITTED = "NOT_PERMITTED"
    INVALID_STATE = "INVALID_STATE"
    VALIDATION_FAILED = "VALIDATION_FAILED"


@dataclass(frozen=True)
class OpResult:
    outcome: Outcome
    reason: str | None = None
    value: Any = None

    def __bool__(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def ok(cls, value: Any = None) -> "OpResult":
        return cls(Outcome.OK, value=value)

    @classmethod
    def not_authorized(cls) -> "OpResult":
        # Deliberately carries no detail about whether the target exists.
        return cls(Outcome.NOT_AUTHORIZED, "Not found")

    @classmethod
    def not_permitted(cls, reason: str) -> "OpResult":
        return cls(Outcome.NOT_PERMITTED, reason)

    @classmethod
    def invalid_state(cls, reason: str) -> "OpResult":
        return cls(Outcome.INVALID_STATE, reason)

    @classmethod
    def validation_failed(cls, reason: str) -> "OpResult":
        return cls(Outcome.VALIDATION_FAILED, reason)


class UnrecoverableError(Exception):
    """Raised when the store could not apply an atomic unit of work."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)

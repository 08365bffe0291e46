"""
Ledger error taxonomy and the result envelope returned across the engine boundary.

Inside the engine, failures are raised as ``LedgerError`` subclasses so the
unit of work rolls back. Public engine methods catch them and hand back a
``LedgerResult`` instead of letting exceptions escape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    BUSY = "BUSY"
    STORAGE_FAILURE = "STORAGE_FAILURE"


RETRYABLE_CODES = frozenset({ErrorCode.BUSY})


class LedgerError(Exception):
    code: ErrorCode = ErrorCode.STORAGE_FAILURE

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_failure(self) -> "LedgerFailure":
        return LedgerFailure(code=self.code, message=self.message, details=dict(self.details))


class InvalidInput(LedgerError):
    code = ErrorCode.INVALID_INPUT


class NotFound(LedgerError):
    code = ErrorCode.NOT_FOUND


class InsufficientStock(LedgerError):
    code = ErrorCode.INSUFFICIENT_STOCK


class Busy(LedgerError):
    code = ErrorCode.BUSY


class StorageFailure(LedgerError):
    code = ErrorCode.STORAGE_FAILURE


class StaleVersion(Exception):
    """Another writer advanced ledger_seq between read and write. Retried internally."""


_ERROR_TYPES = {
    ErrorCode.INVALID_INPUT: InvalidInput,
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.INSUFFICIENT_STOCK: InsufficientStock,
    ErrorCode.BUSY: Busy,
    ErrorCode.STORAGE_FAILURE: StorageFailure,
}


@dataclass(frozen=True)
class LedgerFailure:
    code: ErrorCode
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


@dataclass(frozen=True)
class LedgerResult(Generic[T]):
    """
    Either ``value`` (ok) or ``error`` (failure), never both.
    """

    value: Optional[T] = None
    error: Optional[LedgerFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "LedgerResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LedgerFailure) -> "LedgerResult[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the matching LedgerError."""
        if self.error is not None:
            exc_type = _ERROR_TYPES[self.error.code]
            raise exc_type(self.error.message, **self.error.details)
        return self.value  # type: ignore[return-value]

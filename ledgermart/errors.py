"""
LEDGERMART Error Model

Every public operation of the marketplace returns an ``OperationResult``:
either a success payload or exactly one ``ErrorCode``. Numeric values are
stable and must never be renumbered, since integrations key on them.

Inside an operation, failures are raised as ``MarketError`` subclasses so
that the transaction boundary can roll back and convert them into a failed
result in one place.

    ErrorCode                 Value   Raised by
    ─────────────────────────────────────────────────────────────────
    NOT_AUTHORIZED            100     ownership / admin checks
    ASSET_NOT_FOUND           101     registry lookups
    INSUFFICIENT_BALANCE      102     host currency transfer
    INVALID_PRICE             103     listing price, fee rate
    ALREADY_LISTED            104     reserved, never raised
    NOT_LISTED                105     unlist / buy
    INVALID_PARAMS            106     id range, recipients, admin handover
    SELF_TRANSFER             107     reserved, folded into INVALID_PARAMS
    INVALID_METADATA          108     asset creation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Generic, Optional, Type, TypeVar

T = TypeVar("T")


class ErrorCode(IntEnum):
    """Stable error identities."""
    NOT_AUTHORIZED = 100
    ASSET_NOT_FOUND = 101
    INSUFFICIENT_BALANCE = 102
    INVALID_PRICE = 103
    ALREADY_LISTED = 104
    NOT_LISTED = 105
    INVALID_PARAMS = 106
    SELF_TRANSFER = 107
    INVALID_METADATA = 108


class MarketError(Exception):
    """Base class for rejected operations."""

    code: ErrorCode = ErrorCode.INVALID_PARAMS

    def __init__(self, message: str = "", **context: Any):
        self.message = message or self.code.name.lower().replace("_", " ")
        self.context = context
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, message={self.message!r})"


class NotAuthorized(MarketError):
    code = ErrorCode.NOT_AUTHORIZED


class AssetNotFound(MarketError):
    code = ErrorCode.ASSET_NOT_FOUND


class InsufficientBalance(MarketError):
    code = ErrorCode.INSUFFICIENT_BALANCE


class InvalidPrice(MarketError):
    code = ErrorCode.INVALID_PRICE


class AlreadyListed(MarketError):
    code = ErrorCode.ALREADY_LISTED


class NotListed(MarketError):
    code = ErrorCode.NOT_LISTED


class InvalidParams(MarketError):
    code = ErrorCode.INVALID_PARAMS


class SelfTransfer(MarketError):
    code = ErrorCode.SELF_TRANSFER


class InvalidMetadata(MarketError):
    code = ErrorCode.INVALID_METADATA


ERROR_TYPES: Dict[ErrorCode, Type[MarketError]] = {
    cls.code: cls
    for cls in (
        NotAuthorized,
        AssetNotFound,
        InsufficientBalance,
        InvalidPrice,
        AlreadyListed,
        NotListed,
        InvalidParams,
        SelfTransfer,
        InvalidMetadata,
    )
}


def error_for(code: ErrorCode, message: str = "") -> MarketError:
    """Build the typed exception for an error code."""
    return ERROR_TYPES[ErrorCode(code)](message)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Discriminated result of a marketplace operation."""
    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorCode] = None
    message: str = ""
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: MarketError) -> "OperationResult[T]":
        return cls(ok=False, error=error.code, message=error.message, context=dict(error.context))

    def unwrap(self) -> T:
        """Return the payload or raise the typed error."""
        if not self.ok:
            raise error_for(self.error, self.message)
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {
            "ok": False,
            "error": int(self.error),
            "error_name": self.error.name,
            "message": self.message,
        }

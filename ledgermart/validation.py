"""
LEDGERMART Input Validation

Every operation validates its inputs before writing anything. Validators
raise the typed ``MarketError`` for the failure, so the first failing check
decides the error code callers see. Check order inside each operation is
part of its contract.

Security Model:
    - All caller-supplied values are untrusted until validated
    - Integers are rejected when they are bools
    - Validation precedes every write, so a rejection never leaves
      partial state behind
"""

from __future__ import annotations

from typing import Any

from ledgermart.config import FEE_DENOMINATOR
from ledgermart.errors import InvalidMetadata, InvalidParams, InvalidPrice


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Validators:
    """Collection of input validators."""

    MAX_IDENTITY_LENGTH = 256

    @classmethod
    def require_identity(cls, value: Any, field_name: str = "identity") -> str:
        """Caller and recipient identities are non-empty strings."""
        if not isinstance(value, str) or not value.strip():
            raise InvalidParams(f"{field_name}: expected non-empty identity", value=value)
        if len(value) > cls.MAX_IDENTITY_LENGTH:
            raise InvalidParams(
                f"{field_name}: too long (max {cls.MAX_IDENTITY_LENGTH} chars)", value=value
            )
        return value

    @staticmethod
    def require_issued_id(asset_id: Any, next_asset_id: int) -> int:
        """Asset ids are valid from 1 up to, but excluding, the next id to issue."""
        if not is_int(asset_id) or asset_id < 1 or asset_id >= next_asset_id:
            raise InvalidParams(
                f"asset_id {asset_id!r} outside issued range [1, {next_asset_id})",
                asset_id=asset_id,
            )
        return asset_id

    @staticmethod
    def require_price(price: Any) -> int:
        if not is_int(price) or price <= 0:
            raise InvalidPrice(f"price must be a positive integer, got {price!r}", price=price)
        return price

    @staticmethod
    def require_metadata(metadata: Any, max_length: int) -> str:
        if not isinstance(metadata, str) or len(metadata) == 0:
            raise InvalidMetadata("metadata must be non-empty text")
        if len(metadata) > max_length:
            raise InvalidMetadata(
                f"metadata too long ({len(metadata)} > {max_length})",
                length=len(metadata), max_length=max_length,
            )
        return metadata

    @staticmethod
    def require_fee_bps(fee_bps: Any) -> int:
        # InvalidPrice is the historical code for a bad fee rate.
        if not is_int(fee_bps) or fee_bps < 0 or fee_bps > FEE_DENOMINATOR:
            raise InvalidPrice(
                f"fee must be between 0 and {FEE_DENOMINATOR} basis points, got {fee_bps!r}",
                fee_bps=fee_bps,
            )
        return fee_bps

    @staticmethod
    def require_metadata_limit(length: Any) -> int:
        if not is_int(length) or length < 1:
            raise InvalidParams(f"metadata limit must be a positive integer, got {length!r}")
        return length

"""Records stored by the marketplace.

All records are frozen; updates go through ``dataclasses.replace`` so that a
copied table never shares mutable rows with the live one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Asset:
    """A uniquely identified asset.

    ``created_at`` is the host block height at creation. Only ``owner``
    ever changes after creation.
    """
    asset_id: int
    owner: str
    metadata: str
    created_at: int
    transferable: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Listing:
    """An offer to sell an asset at a fixed price."""
    asset_id: int
    price: int
    seller: str
    listed: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AdminParams:
    """Global parameters, written only by administrator-gated operations
    (plus the id counter, advanced by asset creation)."""
    admin: str
    platform_fee_bps: int = 25
    next_asset_id: int = 1
    max_metadata_length: int = 256

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Settlement:
    """Outcome of a completed purchase."""
    asset_id: int
    buyer: str
    seller: str
    admin: str
    price: int
    fee: int
    seller_proceeds: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

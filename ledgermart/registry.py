"""
LEDGERMART Asset Registry

Source of truth for asset ownership and transferability.

    asset_id ──▶ Asset(owner, metadata, created_at, transferable)
    identity ──▶ lifetime creation count

Ids start at 1, increase strictly and are never reused; records are never
deleted. The creation count tracks how many assets an identity has ever
created. It is not a holdings count and is not decremented when an asset
changes hands.

Methods here raise ``MarketError`` subclasses and must run inside the
marketplace's transaction boundary.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ledgermart.errors import AssetNotFound, InvalidParams, NotAuthorized
from ledgermart.host import HostLedger
from ledgermart.models import Asset
from ledgermart.state import RegistryState
from ledgermart.validation import Validators, is_int


class AssetRegistry:
    """Issuance, direct transfer and lookup of assets."""

    def __init__(self, state: RegistryState, host: HostLedger):
        self._state = state
        self._host = host

    def create_asset(self, caller: str, metadata: str, transferable: bool) -> Asset:
        params = self._state.params
        Validators.require_metadata(metadata, params.max_metadata_length)

        asset = Asset(
            asset_id=params.next_asset_id,
            owner=caller,
            metadata=metadata,
            created_at=self._host.block_height,
            transferable=bool(transferable),
        )
        self._state.assets[asset.asset_id] = asset
        self._state.creation_counts[caller] = self._state.creation_counts.get(caller, 0) + 1
        self._state.update_params(next_asset_id=asset.asset_id + 1)
        return asset

    def transfer_asset(self, caller: str, asset_id: int, recipient: str) -> Tuple[Asset, Asset]:
        """Hand an asset to ``recipient``. Returns (before, after).

        Transfers to the administrator are rejected along with transfers to
        self; both surface as INVALID_PARAMS. A listing left behind by the
        previous owner is not touched here and fails at purchase time.
        """
        params = self._state.params
        Validators.require_issued_id(asset_id, params.next_asset_id)
        Validators.require_identity(recipient, "recipient")
        if recipient == caller:
            raise InvalidParams("cannot transfer an asset to its current holder", asset_id=asset_id)
        if recipient == params.admin:
            raise InvalidParams("cannot transfer an asset to the administrator", asset_id=asset_id)

        asset = self.require_asset(asset_id)
        if asset.owner != caller:
            raise NotAuthorized(f"{caller} does not own asset {asset_id}", asset_id=asset_id)
        if not asset.transferable:
            raise NotAuthorized(f"asset {asset_id} is not transferable", asset_id=asset_id)

        updated = replace(asset, owner=recipient)
        self._state.assets[asset_id] = updated
        return asset, updated

    def assign_owner(self, asset_id: int, new_owner: str) -> Asset:
        """Settlement path used by purchases; callers have already authorised it."""
        updated = replace(self.require_asset(asset_id), owner=new_owner)
        self._state.assets[asset_id] = updated
        return updated

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        if not is_int(asset_id):
            return None
        return self._state.assets.get(asset_id)

    def require_asset(self, asset_id: int) -> Asset:
        asset = self.get_asset(asset_id)
        if asset is None:
            raise AssetNotFound(f"asset {asset_id!r} does not exist", asset_id=asset_id)
        return asset

    def get_owner(self, asset_id: int) -> str:
        return self.require_asset(asset_id).owner

    def get_owner_asset_count(self, identity: str) -> int:
        return self._state.creation_counts.get(identity, 0)

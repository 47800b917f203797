"""
LEDGERMART Marketplace Ledger

Listing lifecycle and fee-bearing purchase settlement.

State Machine (per asset):

    (no listing) ──list──▶ LISTED ──list──▶ LISTED (price/seller replaced)
         ▲                   │
         │                   ├──unlist──▶ (no listing)
         │                   │
         └───────buy─────────┘   owner := buyer

Listings are keyed by asset id, at most one per asset. A listing is not
invalidated when the asset changes hands by direct transfer; ``buy_asset``
re-checks that the seller still owns the asset and rejects the purchase
with NOT_LISTED otherwise, leaving the stale listing in place.

Settlement:

    fee      = price * fee_bps // 1000
    buyer ──(price - fee)──▶ seller
    buyer ──(fee)──────────▶ administrator

Both legs run inside the caller's transaction; if the second leg fails the
first is rolled back with everything else.
"""

from __future__ import annotations

from typing import Optional

from ledgermart.config import FEE_DENOMINATOR
from ledgermart.errors import NotAuthorized, NotListed
from ledgermart.host import HostLedger
from ledgermart.models import Listing, Settlement
from ledgermart.registry import AssetRegistry
from ledgermart.state import RegistryState
from ledgermart.validation import Validators, is_int


def compute_fee(price: int, fee_bps: int) -> int:
    """Platform fee for a sale, rounded down."""
    return price * fee_bps // FEE_DENOMINATOR


class MarketplaceLedger:
    """Listing, delisting and purchase of registered assets."""

    def __init__(self, state: RegistryState, registry: AssetRegistry, host: HostLedger):
        self._state = state
        self._registry = registry
        self._host = host

    def list_asset(self, caller: str, asset_id: int, price: int) -> Listing:
        """Create or replace the listing for an asset.

        Re-listing an already listed asset simply overwrites the previous
        price and seller; ALREADY_LISTED is never raised.
        """
        Validators.require_issued_id(asset_id, self._state.params.next_asset_id)
        Validators.require_price(price)
        asset = self._registry.require_asset(asset_id)
        if asset.owner != caller:
            raise NotAuthorized(f"{caller} does not own asset {asset_id}", asset_id=asset_id)

        listing = Listing(asset_id=asset_id, price=price, seller=caller, listed=True)
        self._state.listings[asset_id] = listing
        return listing

    def unlist_asset(self, caller: str, asset_id: int) -> Listing:
        """Remove a listing. Only its seller may do so. Returns the removed listing."""
        Validators.require_issued_id(asset_id, self._state.params.next_asset_id)
        listing = self._require_listing(asset_id)
        if listing.seller != caller:
            raise NotAuthorized(f"{caller} is not the seller of asset {asset_id}", asset_id=asset_id)

        del self._state.listings[asset_id]
        return listing

    def buy_asset(self, caller: str, asset_id: int) -> Settlement:
        params = self._state.params
        Validators.require_issued_id(asset_id, params.next_asset_id)
        listing = self._require_listing(asset_id)
        asset = self._registry.require_asset(asset_id)
        if not listing.listed or asset.owner != listing.seller:
            raise NotListed(
                f"listing for asset {asset_id} is stale: seller {listing.seller} no longer owns it",
                asset_id=asset_id,
            )

        fee = compute_fee(listing.price, params.platform_fee_bps)
        proceeds = listing.price - fee

        # Zero-amount legs are skipped; hosts reject empty transfers.
        if proceeds > 0:
            self._host.transfer(proceeds, caller, listing.seller)
        if fee > 0:
            self._host.transfer(fee, caller, params.admin)

        self._registry.assign_owner(asset_id, caller)
        del self._state.listings[asset_id]

        return Settlement(
            asset_id=asset_id,
            buyer=caller,
            seller=listing.seller,
            admin=params.admin,
            price=listing.price,
            fee=fee,
            seller_proceeds=proceeds,
        )

    def get_listing(self, asset_id: int) -> Optional[Listing]:
        if not is_int(asset_id):
            return None
        return self._state.listings.get(asset_id)

    def _require_listing(self, asset_id: int) -> Listing:
        listing = self._state.listings.get(asset_id)
        if listing is None:
            raise NotListed(f"asset {asset_id} has no active listing", asset_id=asset_id)
        return listing

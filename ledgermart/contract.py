"""
LEDGERMART Asset Marketplace

Public surface of the registry and marketplace. Every operation is one
atomic state transition:

    ┌────────────────────────────────────────────────────────────────────┐
    │ lock ─▶ snapshot tables ─▶ host savepoint ─▶ validate ─▶ write     │
    │                                                                    │
    │   MarketError   ─▶ restore tables, host rollback, failed result    │
    │   other error   ─▶ restore tables, host rollback, re-raise         │
    │   success       ─▶ release savepoint, audit, publish events        │
    └────────────────────────────────────────────────────────────────────┘

Operations are serialised by a single re-entrant lock, so the tables are
never observed half-written. Failures come back as ``OperationResult``
values rather than exceptions; only programming errors propagate.

Example:

    host = InMemoryLedger()
    market = AssetMarketplace(deployer="admin", host=host)

    asset_id = market.create_asset("alice", "ipfs://item", True).unwrap()
    market.list_asset("alice", asset_id, 1_000_000)
    host.credit("bob", 1_000_000)
    result = market.buy_asset("bob", asset_id)
    assert result.ok and market.get_owner(asset_id).value == "bob"
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from ledgermart.admin import AdminControl
from ledgermart.audit import AuditLog
from ledgermart.config import LedgerMartConfig, get_config
from ledgermart.errors import MarketError, OperationResult
from ledgermart.events import (
    AdminTransferred,
    AssetCreated,
    AssetListed,
    AssetSold,
    AssetTransferred,
    AssetUnlisted,
    Event,
    EventBus,
    MetadataLimitChanged,
    PlatformFeeChanged,
)
from ledgermart.host import HostLedger, InMemoryLedger
from ledgermart.marketplace import MarketplaceLedger, compute_fee
from ledgermart.models import AdminParams, Asset, Listing
from ledgermart.observability import Component, get_correlation_id, get_logger
from ledgermart.registry import AssetRegistry
from ledgermart.state import RegistryState
from ledgermart.validation import Validators, is_int

T = TypeVar("T")

Mutation = Callable[[], Tuple[T, List[Event]]]


class AssetMarketplace:
    """
    One deployed registry and marketplace.

    Args:
        deployer: identity that becomes the first administrator
        host: host ledger; an empty ``InMemoryLedger`` when omitted
        config: initial parameters; the global configuration when omitted
        event_bus: bus receiving committed events
        audit_log: audit sink; created when auditing is enabled
    """

    def __init__(
        self,
        deployer: str,
        host: Optional[HostLedger] = None,
        config: Optional[LedgerMartConfig] = None,
        event_bus: Optional[EventBus] = None,
        audit_log: Optional[AuditLog] = None,
    ):
        Validators.require_identity(deployer, "deployer")
        config = config or get_config()

        self.host = host if host is not None else InMemoryLedger()
        self.events = event_bus if event_bus is not None else EventBus()
        if audit_log is None and config.observability.audit_enabled.get():
            audit_log = AuditLog()
        self.audit = audit_log

        self._state = RegistryState(
            params=AdminParams(
                admin=deployer,
                platform_fee_bps=Validators.require_fee_bps(config.market.platform_fee_bps.get()),
                next_asset_id=1,
                max_metadata_length=Validators.require_metadata_limit(
                    config.market.max_metadata_length.get()
                ),
            )
        )
        self._lock = threading.RLock()
        self._registry = AssetRegistry(self._state, self.host)
        self._market = MarketplaceLedger(self._state, self._registry, self.host)
        self._admin = AdminControl(self._state)
        self._log = get_logger("asset_marketplace", Component.MARKETPLACE)
        self._log.info(
            "marketplace deployed",
            admin=deployer,
            platform_fee_bps=self._state.params.platform_fee_bps,
            max_metadata_length=self._state.params.max_metadata_length,
        )

    # ------------------------------------------------------------------
    # transaction boundary
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = self._state.copy()
            token = self.host.savepoint()
            try:
                yield
            except BaseException:
                self._state.restore(snapshot)
                self.host.rollback(token)
                raise
            self.host.release(token)

    def _execute(
        self,
        action: str,
        caller: Any,
        mutation: Mutation,
        asset_id: Optional[int] = None,
    ) -> OperationResult:
        start = time.monotonic()
        correlation_id = get_correlation_id()
        # Audit, logging and delivery stay under the lock so that they
        # follow commit order.
        with self._lock:
            try:
                with self._transaction():
                    Validators.require_identity(caller, "caller")
                    height = self.host.block_height
                    value, events = mutation()
            except MarketError as exc:
                self._finish(action, caller, start, correlation_id, asset_id, exc, [])
                return OperationResult.failure(exc)

            for event in events:
                event.correlation_id = correlation_id
                event.block_height = height
            self._finish(action, caller, start, correlation_id, asset_id, None, events)
            for event in events:
                self.events.publish(event)
        return OperationResult.success(value)

    def _finish(
        self,
        action: str,
        caller: Any,
        start: float,
        correlation_id: str,
        asset_id: Optional[int],
        error: Optional[MarketError],
        events: List[Event],
    ) -> None:
        duration_ms = (time.monotonic() - start) * 1000
        error_code = error.code.name if error else ""
        self._log.operation(
            action,
            duration_ms,
            success=error is None,
            error_code=error_code,
            caller=caller if isinstance(caller, str) else repr(caller),
            asset_id=asset_id,
            reason=error.message if error else "",
        )
        if self.audit is not None:
            self.audit.record(
                actor=caller if isinstance(caller, str) else repr(caller),
                action=action,
                outcome="rejected" if error else "committed",
                asset_id=asset_id if is_int(asset_id) else None,
                error_code=int(error.code) if error else None,
                correlation_id=correlation_id,
                details=_audit_details(error, events),
            )

    # ------------------------------------------------------------------
    # asset registry
    # ------------------------------------------------------------------

    def create_asset(self, caller: str, metadata: str, transferable: bool = True) -> OperationResult[int]:
        """Issue a new asset owned by ``caller``. Returns its id."""
        def mutation():
            asset = self._registry.create_asset(caller, metadata, transferable)
            return asset.asset_id, [
                AssetCreated(asset_id=asset.asset_id, owner=caller, transferable=asset.transferable)
            ]
        return self._execute("create-asset", caller, mutation)

    def transfer_asset(self, caller: str, asset_id: int, recipient: str) -> OperationResult[bool]:
        def mutation():
            before, after = self._registry.transfer_asset(caller, asset_id, recipient)
            return True, [
                AssetTransferred(asset_id=asset_id, sender=before.owner, recipient=after.owner)
            ]
        return self._execute("transfer-asset", caller, mutation, asset_id=asset_id)

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        with self._lock:
            return self._registry.get_asset(asset_id)

    def get_owner(self, asset_id: int) -> OperationResult[str]:
        with self._lock:
            try:
                return OperationResult.success(self._registry.get_owner(asset_id))
            except MarketError as exc:
                return OperationResult.failure(exc)

    def get_owner_asset_count(self, identity: str) -> int:
        """Lifetime number of assets created by ``identity``."""
        with self._lock:
            return self._registry.get_owner_asset_count(identity)

    # ------------------------------------------------------------------
    # marketplace
    # ------------------------------------------------------------------

    def list_asset(self, caller: str, asset_id: int, price: int) -> OperationResult[bool]:
        def mutation():
            previous = self._market.get_listing(asset_id)
            listing = self._market.list_asset(caller, asset_id, price)
            return True, [
                AssetListed(
                    asset_id=asset_id,
                    seller=listing.seller,
                    price=listing.price,
                    replaced_price=previous.price if previous else None,
                )
            ]
        return self._execute("list-asset", caller, mutation, asset_id=asset_id)

    def unlist_asset(self, caller: str, asset_id: int) -> OperationResult[bool]:
        def mutation():
            listing = self._market.unlist_asset(caller, asset_id)
            return True, [AssetUnlisted(asset_id=asset_id, seller=listing.seller)]
        return self._execute("unlist-asset", caller, mutation, asset_id=asset_id)

    def buy_asset(self, caller: str, asset_id: int) -> OperationResult[bool]:
        """Purchase a listed asset, paying the seller and the platform fee."""
        def mutation():
            s = self._market.buy_asset(caller, asset_id)
            return True, [
                AssetSold(
                    asset_id=asset_id,
                    buyer=s.buyer,
                    seller=s.seller,
                    price=s.price,
                    fee=s.fee,
                    seller_proceeds=s.seller_proceeds,
                )
            ]
        return self._execute("buy-asset", caller, mutation, asset_id=asset_id)

    def get_listing(self, asset_id: int) -> Optional[Listing]:
        with self._lock:
            return self._market.get_listing(asset_id)

    def calculate_fee(self, price: int) -> OperationResult[int]:
        """Fee a sale at ``price`` would pay at the current rate."""
        with self._lock:
            try:
                Validators.require_price(price)
            except MarketError as exc:
                return OperationResult.failure(exc)
            return OperationResult.success(compute_fee(price, self._state.params.platform_fee_bps))

    # ------------------------------------------------------------------
    # administration
    # ------------------------------------------------------------------

    def set_platform_fee(self, caller: str, new_fee_bps: int) -> OperationResult[bool]:
        def mutation():
            old, new = self._admin.set_platform_fee(caller, new_fee_bps)
            return True, [PlatformFeeChanged(old_fee_bps=old, new_fee_bps=new)]
        return self._execute("set-platform-fee", caller, mutation)

    def transfer_ownership(self, caller: str, new_admin: str) -> OperationResult[bool]:
        def mutation():
            old, new = self._admin.transfer_ownership(caller, new_admin)
            return True, [AdminTransferred(old_admin=old, new_admin=new)]
        return self._execute("transfer-ownership", caller, mutation)

    def set_max_metadata_length(self, caller: str, new_length: int) -> OperationResult[bool]:
        def mutation():
            old, new = self._admin.set_max_metadata_length(caller, new_length)
            return True, [MetadataLimitChanged(old_limit=old, new_limit=new)]
        return self._execute("set-max-metadata-length", caller, mutation)

    def get_platform_fee(self) -> int:
        with self._lock:
            return self._state.params.platform_fee_bps

    def get_admin(self) -> str:
        with self._lock:
            return self._state.params.admin

    def get_next_asset_id(self) -> int:
        with self._lock:
            return self._state.params.next_asset_id

    def get_max_metadata_length(self) -> int:
        with self._lock:
            return self._state.params.max_metadata_length

    def snapshot(self) -> Dict[str, Any]:
        """JSON-compatible export of every table and parameter."""
        with self._lock:
            return self._state.to_dict()


def _audit_details(error: Optional[MarketError], events: List[Event]) -> Dict[str, Any]:
    if error is not None:
        return {"reason": error.message}
    details: Dict[str, Any] = {}
    for event in events:
        details.update(event.payload())
    return details

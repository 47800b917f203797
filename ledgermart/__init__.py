"""
LEDGERMART — Asset Registry and Marketplace

Tracks ownership of uniquely identified digital assets, enforces
transferability, and settles peer-to-peer sales with an automatic platform
fee. The host ledger (consensus, currency accounts, identities) is an
external collaborator reached through two narrow primitives: currency
transfer and block height.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                           AssetMarketplace                               │
    │        lock + copy-on-write snapshot + host savepoint per operation      │
    │                                                                          │
    │   registry.py     AssetRegistry       issuance, transfer, lookup        │
    │   marketplace.py  MarketplaceLedger   list, unlist, buy + fee split     │
    │   admin.py        AdminControl        fee rate, admin handover, limits  │
    │                                                                          │
    │   state.py        RegistryState       assets, listings, counts, params  │
    │   host.py         HostLedger          transfer, block height, savepoint │
    │                                                                          │
    │   events.py       EventBus            committed domain events           │
    │   audit.py        AuditLog            hash-chained operation trail      │
    │   config.py       ConfigManager       YAML + env layered settings       │
    │   observability   MarketLogger        structured JSON logging           │
    └─────────────────────────────────────────────────────────────────────────┘

Core Concepts
─────────────

    Asset: record with an integer id (1, 2, 3, ... never reused), an owner,
    bounded metadata, the block height it was created at, and an immutable
    transferable flag.

    Listing: an offer to sell an asset at a fixed price. Re-listing replaces
    the previous offer. Listings are not invalidated by direct transfers;
    purchases re-check that the seller still owns the asset.

    Fee: basis points out of 1000 (25 = 2.5%), rounded down, paid by the
    buyer to the administrator alongside the seller's share.

    Result: every operation returns an OperationResult carrying either a
    payload or one stable numeric ErrorCode.
"""

__version__ = "0.3.1"


def __getattr__(name):
    """Lazy import of the public API on first access."""

    if name in ("AssetMarketplace",):
        from ledgermart import contract
        return getattr(contract, name)

    if name in ("ErrorCode", "MarketError", "OperationResult", "NotAuthorized",
                "AssetNotFound", "InsufficientBalance", "InvalidPrice", "AlreadyListed",
                "NotListed", "InvalidParams", "SelfTransfer", "InvalidMetadata"):
        from ledgermart import errors
        return getattr(errors, name)

    if name in ("Asset", "Listing", "AdminParams", "Settlement"):
        from ledgermart import models
        return getattr(models, name)

    if name in ("HostLedger", "InMemoryLedger"):
        from ledgermart import host
        return getattr(host, name)

    if name in ("Event", "EventBus", "AssetCreated", "AssetTransferred", "AssetListed",
                "AssetUnlisted", "AssetSold", "PlatformFeeChanged", "AdminTransferred",
                "MetadataLimitChanged"):
        from ledgermart import events
        return getattr(events, name)

    if name in ("AuditLog", "AuditEntry"):
        from ledgermart import audit
        return getattr(audit, name)

    if name in ("ConfigManager", "LedgerMartConfig", "get_config", "get_config_manager",
                "FEE_DENOMINATOR"):
        from ledgermart import config
        return getattr(config, name)

    raise AttributeError(f"module 'ledgermart' has no attribute {name!r}")

"""
LEDGERMART Domain Events

Committed marketplace operations publish immutable events on a synchronous
in-process bus. Rejected operations publish nothing.

Usage
─────

    bus = EventBus()

    @bus.subscribe(AssetSold)
    def on_sale(event: AssetSold):
        print(f"asset {event.asset_id} sold for {event.price}")

    market = AssetMarketplace(deployer="admin", event_bus=bus)

Handler failures are counted and logged; they never affect the state the
event describes, which is already committed when handlers run.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Type

from ledgermart.core import canonical_digest
from ledgermart.observability import Component, get_logger

_METADATA_FIELDS = ("event_id", "event_timestamp", "correlation_id", "block_height")


@dataclass
class Event:
    """
    Base class for all marketplace events.

    Metadata fields are auto-populated; subclasses add the payload.
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: Optional[str] = None
    block_height: int = 0

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data

    def payload(self) -> Dict[str, Any]:
        """Subclass fields only, without the metadata fields."""
        data = asdict(self)
        for name in _METADATA_FIELDS:
            data.pop(name, None)
        return data

    def to_json(self) -> str:
        """Serialize for display/transport (not for digest computation)."""
        return json.dumps(self.to_dict(), sort_keys=True)

    def digest(self) -> str:
        """Deterministic digest of the event content."""
        return canonical_digest(self.to_dict())


@dataclass
class AssetCreated(Event):
    """Emitted when a new asset is issued."""
    asset_id: int = 0
    owner: str = ""
    transferable: bool = True


@dataclass
class AssetTransferred(Event):
    """Emitted on a direct owner-to-recipient transfer."""
    asset_id: int = 0
    sender: str = ""
    recipient: str = ""


@dataclass
class AssetListed(Event):
    asset_id: int = 0
    seller: str = ""
    price: int = 0
    replaced_price: Optional[int] = None


@dataclass
class AssetUnlisted(Event):
    asset_id: int = 0
    seller: str = ""


@dataclass
class AssetSold(Event):
    """Emitted when a purchase settles."""
    asset_id: int = 0
    buyer: str = ""
    seller: str = ""
    price: int = 0
    fee: int = 0
    seller_proceeds: int = 0


@dataclass
class PlatformFeeChanged(Event):
    old_fee_bps: int = 0
    new_fee_bps: int = 0


@dataclass
class AdminTransferred(Event):
    old_admin: str = ""
    new_admin: str = ""


@dataclass
class MetadataLimitChanged(Event):
    old_limit: int = 0
    new_limit: int = 0


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    """Registration for an event handler."""
    handler: EventHandler
    event_types: Set[Type[Event]]
    priority: int = 0


class EventHandlerError(Exception):
    """Error raised by a subscriber."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


class EventBus:
    """
    In-memory synchronous event bus.

    Example:
        bus = EventBus()

        @bus.subscribe(AssetCreated, AssetSold)
        def handle(event):
            print(event.event_type)
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._handlers: List[EventHandlerRegistration] = []
        self._lock = threading.RLock()
        self._on_error = on_error
        self._published_count = 0
        self._handled_count = 0
        self._error_count = 0
        self._log = get_logger("event_bus", Component.EVENTS)

    def subscribe(
        self,
        *event_types: Type[Event],
        priority: int = 0,
    ) -> Callable[[EventHandler], EventHandler]:
        """Decorator subscribing a handler; no types means every event.

        Higher priority handlers run first.
        """
        def decorator(handler: EventHandler) -> EventHandler:
            registration = EventHandlerRegistration(
                handler=handler,
                event_types=set(event_types) if event_types else {Event},
                priority=priority,
            )
            with self._lock:
                self._handlers.append(registration)
                self._handlers.sort(key=lambda r: -r.priority)
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            original_len = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < original_len

    def publish(self, event: Event) -> int:
        """Deliver an event to matching handlers. Returns how many succeeded."""
        with self._lock:
            self._published_count += 1
            targets = [
                r for r in self._handlers
                if any(isinstance(event, t) for t in r.event_types)
            ]

        delivered = 0
        for registration in targets:
            if self._call_handler(registration.handler, event):
                delivered += 1
        return delivered

    def _call_handler(self, handler: EventHandler, event: Event) -> bool:
        try:
            handler(event)
        except Exception as e:
            with self._lock:
                self._error_count += 1
            error = EventHandlerError(event, handler, e)
            self._log.error(str(error), error_code="handler_failed", exc_info=True, event_id=event.event_id)
            if self._on_error:
                self._on_error(error)
            return False
        with self._lock:
            self._handled_count += 1
        return True

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "published": self._published_count,
                "handled": self._handled_count,
                "errors": self._error_count,
                "subscribers": len(self._handlers),
            }

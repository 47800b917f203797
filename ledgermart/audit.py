"""
LEDGERMART Audit Log

Tamper-evident record of every mutating operation, committed or rejected.
Each entry carries the digest of its predecessor, so editing or dropping an
entry breaks the chain from that point on.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ledgermart.core import canonical_digest
from ledgermart.observability import Component, get_logger

GENESIS_DIGEST = "0" * 64


@dataclass
class AuditEntry:
    """One audited operation."""
    sequence: int
    timestamp: str
    actor: str
    action: str
    outcome: str  # committed, rejected
    asset_id: Optional[int] = None
    error_code: Optional[int] = None
    correlation_id: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    previous_digest: str = GENESIS_DIGEST
    digest: str = ""

    def __post_init__(self):
        if not self.digest:
            self.digest = self.compute_digest()

    def _content(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "action": self.action,
            "outcome": self.outcome,
            "asset_id": self.asset_id,
            "error_code": self.error_code,
            "correlation_id": self.correlation_id,
            "details": self.details,
            "previous_digest": self.previous_digest,
        }

    def compute_digest(self) -> str:
        return canonical_digest(self._content())

    def to_dict(self) -> Dict[str, Any]:
        d = self._content()
        d["digest"] = self.digest
        return d


class AuditLog:
    """
    Append-only, hash-chained audit log.

    Thread-safe; entries are numbered from 1 in append order.
    """

    def __init__(self):
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()
        self._log = get_logger("audit_log", Component.AUDIT)

    def record(
        self,
        actor: str,
        action: str,
        outcome: str,
        asset_id: Optional[int] = None,
        error_code: Optional[int] = None,
        correlation_id: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        with self._lock:
            previous = self._entries[-1].digest if self._entries else GENESIS_DIGEST
            entry = AuditEntry(
                sequence=len(self._entries) + 1,
                timestamp=datetime.now(timezone.utc).isoformat(),
                actor=actor,
                action=action,
                outcome=outcome,
                asset_id=asset_id,
                error_code=error_code,
                correlation_id=correlation_id,
                details=dict(details or {}),
                previous_digest=previous,
            )
            self._entries.append(entry)

        self._log.debug(
            f"AUDIT: {action} by {actor} {outcome}",
            operation="audit",
            sequence=entry.sequence,
            digest=entry.digest,
        )
        return entry

    def verify_chain(self) -> Tuple[bool, Optional[int]]:
        """
        Verify chain integrity.

        Returns (valid, index of the first bad entry).
        """
        with self._lock:
            previous = GENESIS_DIGEST
            for i, entry in enumerate(self._entries):
                if entry.previous_digest != previous:
                    return (False, i)
                if entry.compute_digest() != entry.digest:
                    return (False, i)
                previous = entry.digest
            return (True, None)

    def entries(
        self,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        asset_id: Optional[int] = None,
        outcome: Optional[str] = None,
    ) -> List[AuditEntry]:
        """Query entries, oldest first."""
        with self._lock:
            found = list(self._entries)

        if actor is not None:
            found = [e for e in found if e.actor == actor]
        if action is not None:
            found = [e for e in found if e.action == action]
        if asset_id is not None:
            found = [e for e in found if e.asset_id == asset_id]
        if outcome is not None:
            found = [e for e in found if e.outcome == outcome]
        return found

    @property
    def head(self) -> str:
        """Digest of the newest entry."""
        with self._lock:
            return self._entries[-1].digest if self._entries else GENESIS_DIGEST

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def export(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [e.to_dict() for e in self._entries]

"""
LEDGERMART Host Ledger Interface

The marketplace consumes three primitives from its host ledger:

    block_height                      read-only monotonic position counter
    transfer(amount, sender, to)      native-currency move, atomic
    savepoint / rollback / release    transaction boundary

``InMemoryLedger`` is the reference host used by tests and embedders that
have no real chain behind them.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ledgermart.errors import InsufficientBalance
from ledgermart.observability import Component, get_logger


class HostLedger(ABC):
    """Primitives the marketplace needs from the ledger hosting it."""

    @property
    @abstractmethod
    def block_height(self) -> int:
        """Current position of the ledger."""

    @abstractmethod
    def transfer(self, amount: int, sender: str, recipient: str) -> None:
        """Move ``amount`` from sender to recipient.

        Raises:
            InsufficientBalance: sender cannot cover the amount
        """

    @abstractmethod
    def savepoint(self) -> Any:
        """Open a savepoint and return an opaque token."""

    @abstractmethod
    def rollback(self, token: Any) -> None:
        """Undo the transfers made under ``token``, newest first."""

    def release(self, token: Any) -> None:
        """Discard a savepoint after commit."""
        return None


@dataclass
class Savepoint:
    """Transfers made by one thread since the savepoint was opened."""
    thread_id: int
    journal: List[Tuple[int, str, str]] = field(default_factory=list)


class InMemoryLedger(HostLedger):
    """
    Dictionary-backed host ledger.

    Balances are integers in the smallest currency unit. Each thread keeps
    its own stack of open savepoints, and a transfer is journaled on the
    innermost savepoint of the thread that made it. Rollback reverses that
    journal newest first, so credits and transfers made outside the
    savepoint survive. Releasing a savepoint makes its transfers final,
    even when an outer savepoint is still open.
    """

    def __init__(self, block_height: int = 0, balances: Optional[Dict[str, int]] = None):
        if block_height < 0:
            raise ValueError("block_height cannot be negative")
        self._height = block_height
        self._balances: Dict[str, int] = dict(balances or {})
        self._savepoints: Dict[int, List[Savepoint]] = {}
        self._lock = threading.RLock()
        self._log = get_logger("in_memory_ledger", Component.HOST)

    @property
    def block_height(self) -> int:
        with self._lock:
            return self._height

    def mine(self, blocks: int = 1) -> int:
        """Advance the block height. Returns the new height."""
        if blocks < 1:
            raise ValueError("blocks must be positive")
        with self._lock:
            self._height += blocks
            return self._height

    def credit(self, identity: str, amount: int) -> int:
        """Mint ``amount`` into an account. Returns the new balance."""
        if amount <= 0:
            raise ValueError("credit amount must be positive")
        with self._lock:
            self._balances[identity] = self._balances.get(identity, 0) + amount
            return self._balances[identity]

    def balance_of(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def transfer(self, amount: int, sender: str, recipient: str) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValueError(f"transfer amount must be a positive integer, got {amount!r}")
        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount:
                self._log.debug(
                    "transfer rejected",
                    sender=sender, recipient=recipient, amount=amount, available=available,
                )
                raise InsufficientBalance(
                    f"{sender} has {available}, needs {amount}",
                    sender=sender, amount=amount, available=available,
                )
            self._move(amount, sender, recipient)
            stack = self._savepoints.get(threading.get_ident())
            if stack:
                stack[-1].journal.append((amount, sender, recipient))

    def savepoint(self) -> Savepoint:
        token = Savepoint(thread_id=threading.get_ident())
        with self._lock:
            self._savepoints.setdefault(token.thread_id, []).append(token)
        return token

    def rollback(self, token: Savepoint) -> None:
        """Reverse the transfers journaled on ``token`` and on savepoints opened after it."""
        with self._lock:
            for savepoint in reversed(self._close(token)):
                for amount, sender, recipient in reversed(savepoint.journal):
                    self._move(amount, recipient, sender)
            self._log.debug("savepoint rolled back", thread_id=token.thread_id)

    def release(self, token: Savepoint) -> None:
        with self._lock:
            self._close(token)

    def _move(self, amount: int, sender: str, recipient: str) -> None:
        # Reversals may drive a balance below zero when the recipient has
        # already spent the funds; the host does not refuse them.
        self._balances[sender] = self._balances.get(sender, 0) - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def _close(self, token: Savepoint) -> List[Savepoint]:
        """Pop ``token`` and everything above it off its thread's stack."""
        stack = self._savepoints.get(token.thread_id, [])
        for index, savepoint in enumerate(stack):
            if savepoint is token:
                break
        else:
            raise ValueError("savepoint is not open")
        closed = stack[index:]
        del stack[index:]
        if not stack:
            del self._savepoints[token.thread_id]
        return closed

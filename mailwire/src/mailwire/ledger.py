"""Append-only record of messages handed to delivery backends.

What:
  Provide :class:`DeliveriesLedger`, an ordered in-memory sink that every
  :class:`~mailwire.network.base.DeliveryMethod` appends to after a successful
  dispatch, plus the lazily-created process-wide instance behind
  :func:`mailwire.deliveries`.

Why:
  Tests and inspection tooling need to see what left the process without
  talking to a real MTA. Backends accept an explicit ledger so a test can
  inject its own sink; the process-wide one keeps the zero-configuration path
  working.

How:
  A list guarded by a :class:`threading.Lock`. Appends are the only mutation
  offered to backends; :meth:`DeliveriesLedger.clear` exists for test
  isolation only.

Interfaces:
  :class:`DeliveriesLedger`, :func:`get_deliveries`, :func:`reset_deliveries`.

Invariants & Safety:
  - Entries appear in completion order; concurrent appenders never lose an
    entry.
  - Readers receive snapshots, never the live list.
"""
from __future__ import annotations

import threading
from typing import Any, Iterator, List, Optional


class DeliveriesLedger:
    """Thread-safe, append-only sequence of delivered messages."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[Any] = []

    def append(self, message: Any) -> None:
        with self._lock:
            self._entries.append(message)

    def snapshot(self) -> List[Any]:
        """Return a copy of the entries in completion order."""

        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.snapshot())

    def __getitem__(self, index):
        with self._lock:
            return self._entries[index]

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"DeliveriesLedger({len(self)} messages)"


_LEDGER: Optional[DeliveriesLedger] = None
_LEDGER_LOCK = threading.Lock()


def get_deliveries() -> DeliveriesLedger:
    """Return the process-wide ledger, creating it on first access."""

    global _LEDGER

    with _LEDGER_LOCK:
        if _LEDGER is None:
            _LEDGER = DeliveriesLedger()
        return _LEDGER


def reset_deliveries() -> None:
    """Empty the process-wide ledger.

    The instance is kept so backends that captured it keep reporting into the
    same sink.
    """

    get_deliveries().clear()

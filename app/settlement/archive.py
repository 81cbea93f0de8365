# app/settlement/archive.py
"""
Bounded most-recent-first history of issued receipts.

This is operational history for inspection only. It is not an authoritative
settlement record: access decisions rely on receipt signatures and the nonce
ledger, never on archive membership.
"""
import threading
from collections import deque
from typing import List

from app.settlement.types import Receipt

DEFAULT_CAPACITY = 500


class ReceiptArchive:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Archive capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: deque = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def record(self, receipt: Receipt) -> None:
        """Insert at the front, dropping the oldest receipt once full."""
        with self._lock:
            # appendleft on a bounded deque discards from the right
            self._items.appendleft(receipt)

    def items(self) -> List[Receipt]:
        """Snapshot of the archive, most recent first."""
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

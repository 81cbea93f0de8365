# app/settlement/ledger.py
"""
Consumed-nonce ledger for replay protection.

Each nonce that settled successfully is remembered until its invoice would
have expired anyway. Entries past their expiry are treated as absent even
before eviction, so eviction only reclaims memory.

Thread-safe for concurrent settlements. ``reserve`` is the atomic
insert-if-absent primitive that settlement relies on; ``seen`` followed by
``mark`` is not atomic and must not be used to gate settlement on its own.
"""
import logging
import threading
from typing import Callable, Dict, Optional

from app.settlement.types import now_sec

logger = logging.getLogger(__name__)


class NonceLedger:
    """In-memory nonce -> expiry map."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        """
        Initialize an empty ledger.

        Args:
            clock: Returns the current epoch second. Defaults to wall-clock time.
        """
        self._clock = clock or now_sec
        self._entries: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _live(self, nonce: str, now: int) -> bool:
        expire_at = self._entries.get(nonce)
        return expire_at is not None and expire_at >= now

    def seen(self, nonce: str) -> bool:
        """True iff the nonce has an entry whose expiry has not passed."""
        with self._lock:
            return self._live(nonce, self._clock())

    def mark(self, nonce: str, expire_at: int) -> None:
        """Record or overwrite the nonce's expiry."""
        with self._lock:
            self._entries[nonce] = expire_at

    def reserve(self, nonce: str, expire_at: int) -> bool:
        """
        Atomically claim a nonce.

        Returns:
            True if the nonce was free (absent or expired) and is now recorded,
            False if another settlement already holds it.
        """
        with self._lock:
            if self._live(nonce, self._clock()):
                return False
            self._entries[nonce] = expire_at
            return True

    def evict_expired(self) -> int:
        """
        Remove entries whose expiry has passed.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            stale = [nonce for nonce, expire_at in self._entries.items() if expire_at < now]
            for nonce in stale:
                del self._entries[nonce]

        if stale:
            logger.debug(f"Evicted {len(stale)} expired nonces")
        return len(stale)

    def reset(self) -> None:
        """Forget every nonce (useful for testing)."""
        with self._lock:
            self._entries.clear()

# tests/test_archive.py
"""
Unit tests for the bounded receipt archive.
"""
import pytest

from app.settlement.archive import DEFAULT_CAPACITY, ReceiptArchive
from app.settlement.types import Receipt


def make_receipt(i: int) -> Receipt:
    return Receipt(
        feature="api.translate",
        amount="0.01",
        unit="SOL",
        ttl=90,
        nonce=f"nonce-{i}",
        merkleId="ab" * 32,
        payer="payer",
        gatewayPubkey="pub",
        ts=1_700_000_000 + i,
        sig="sig",
    )


class TestReceiptArchive:
    """Test insertion order and capacity bound."""

    def test_empty(self):
        """A new archive holds nothing."""
        archive = ReceiptArchive()
        assert archive.items() == []
        assert archive.capacity == DEFAULT_CAPACITY == 500

    def test_most_recent_first(self):
        """Items come back newest first."""
        archive = ReceiptArchive()
        for i in range(3):
            archive.record(make_receipt(i))

        nonces = [r.nonce for r in archive.items()]
        assert nonces == ["nonce-2", "nonce-1", "nonce-0"]

    def test_capacity_bound(self):
        """Oldest receipts are dropped once full."""
        archive = ReceiptArchive(capacity=3)
        for i in range(10):
            archive.record(make_receipt(i))
            assert len(archive) <= 3
            assert archive.items()[0].nonce == f"nonce-{i}"

        assert [r.nonce for r in archive.items()] == ["nonce-9", "nonce-8", "nonce-7"]

    def test_default_capacity_bound(self):
        """The default archive keeps the latest 500 receipts."""
        archive = ReceiptArchive()
        for i in range(DEFAULT_CAPACITY + 25):
            archive.record(make_receipt(i))
        assert len(archive) == DEFAULT_CAPACITY
        assert archive.items()[-1].nonce == "nonce-25"

    def test_items_is_a_snapshot(self):
        """Mutating the returned list leaves the archive untouched."""
        archive = ReceiptArchive()
        archive.record(make_receipt(0))
        snapshot = archive.items()
        archive.record(make_receipt(1))
        assert len(snapshot) == 1

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity):
        """Capacity below one is rejected."""
        with pytest.raises(ValueError):
            ReceiptArchive(capacity=capacity)

    def test_clear(self):
        """Clearing empties the archive."""
        archive = ReceiptArchive()
        archive.record(make_receipt(0))
        archive.clear()
        assert len(archive) == 0

# tests/test_receipts.py
"""
Unit tests for receipt signing and offline verification.
"""
import pytest

from app.settlement.identity import GatewayIdentity
from app.settlement.invoice import invoice_message
from app.settlement.receipts import (
    RECEIPT_MESSAGE_FIELDS,
    ReceiptAuthority,
    receipt_message,
    verify_gateway_signature,
    verify_receipt,
)
from conftest import T0, make_invoice


PAYER = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


@pytest.fixture
def authority(identity, clock):
    return ReceiptAuthority(identity, clock=clock)


@pytest.fixture
def receipt(authority):
    return authority.sign(make_invoice(), payer=PAYER)


class TestSign:
    """Test receipt construction."""

    def test_copies_invoice_fields(self, receipt, identity):
        """Receipts copy the invoice fields and gateway key."""
        invoice = make_invoice()
        assert receipt.feature == invoice.feature
        assert receipt.amount == invoice.amount
        assert receipt.unit == invoice.unit
        assert receipt.ttl == invoice.ttl
        assert receipt.nonce == invoice.nonce
        assert receipt.merkleId == invoice.merkleId
        assert receipt.ts == invoice.ts
        assert receipt.payer == PAYER
        assert receipt.gatewayPubkey == identity.public_key_b64

    def test_signature_covers_receipt_message(self, receipt):
        """The signature covers the receipt message."""
        assert verify_gateway_signature(receipt_message(receipt), receipt.sig, receipt.gatewayPubkey)

    def test_receipt_message_binds_payer_and_key(self, receipt):
        """The receipt message includes payer and gateway key."""
        message = receipt_message(receipt)
        assert "payer" in RECEIPT_MESSAGE_FIELDS and "gatewayPubkey" in RECEIPT_MESSAGE_FIELDS
        assert message.endswith(f"|{PAYER}|{receipt.gatewayPubkey}")
        assert message != invoice_message(make_invoice())


class TestVerifyReceipt:
    """Test offline verification."""

    def test_valid_receipt(self, receipt):
        """A fresh, untouched receipt verifies."""
        check = verify_receipt(receipt, now=T0 + 10)
        assert check.ok is True
        assert check.reason is None

    def test_expired_receipt(self, receipt):
        """A stale receipt fails as expired."""
        check = verify_receipt(receipt, now=T0 + 91)
        assert check.ok is False
        assert check.reason == "expired"

    def test_fresh_at_ttl_boundary(self, receipt):
        """A receipt is still fresh exactly at its ttl."""
        assert verify_receipt(receipt, now=T0 + 90).ok is True

    @pytest.mark.parametrize("field, value", [
        ("feature", "api.translatf"),
        ("amount", "0.02"),
        ("unit", "SOM"),
        ("nonce", "1123456789abcdef0123456789abcdef"),
        ("merkleId", "ce" + "cd" * 31),
        ("ts", T0 + 1),
        ("ttl", 91),
        ("payer", PAYER[:-1] + "m"),
    ])
    def test_mutated_field_fails(self, receipt, field, value):
        """Changing any signed field breaks the signature."""
        tampered = receipt.model_copy(update={field: value})
        check = verify_receipt(tampered, now=T0 + 10)
        assert check.ok is False
        assert check.reason == "bad-sig"

    def test_garbage_signature_does_not_raise(self, receipt):
        """Malformed signatures fail without raising."""
        for sig in ["", "!!!", "AAAA", receipt.sig[:-8]]:
            check = verify_receipt(receipt.model_copy(update={"sig": sig}), now=T0)
            assert check.reason == "bad-sig"

    def test_garbage_gateway_key_does_not_raise(self, receipt):
        """Malformed gateway keys fail without raising."""
        check = verify_receipt(receipt.model_copy(update={"gatewayPubkey": "nope"}), now=T0)
        assert check.reason == "bad-sig"

    def test_foreign_gateway_accepted_without_pin(self, clock):
        """Offline verification trusts the key named in the receipt unless pinned."""
        other = ReceiptAuthority(GatewayIdentity.load(b"\x09" * 32), clock=clock)
        foreign = other.sign(make_invoice(), payer=PAYER)
        assert verify_receipt(foreign, now=T0).ok is True

    def test_foreign_gateway_rejected_when_pinned(self, authority, clock):
        """A pinned key rejects receipts from other gateways."""
        other = ReceiptAuthority(GatewayIdentity.load(b"\x09" * 32), clock=clock)
        foreign = other.sign(make_invoice(), payer=PAYER)

        assert verify_receipt(foreign, trusted_pubkey=authority.public_key_b64, now=T0).reason == "bad-sig"
        assert authority.verify(foreign).reason == "bad-sig"
        assert authority.verify(foreign, pin_gateway_key=False).ok is True

    def test_authority_uses_its_clock(self, authority, receipt, clock):
        """The authority judges freshness by its own clock."""
        assert authority.verify(receipt).ok is True
        clock.advance(91)
        assert authority.verify(receipt).reason == "expired"

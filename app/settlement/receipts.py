# app/settlement/receipts.py
"""
Receipt signing and offline verification.

A receipt's canonical message is derived independently of the invoice's: on
top of the priced fields it binds the ttl, the payer account and the signing
gateway's public key. Verification needs only the receipt itself (and,
optionally, the public key the verifier trusts), never the private key.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from nacl.signing import VerifyKey

from app.settlement.errors import BadSignatureError, ExpiredError
from app.settlement.identity import GatewayIdentity
from app.settlement.invoice import canonical_message
from app.settlement.types import Invoice, Receipt, is_fresh, now_sec

logger = logging.getLogger(__name__)

RECEIPT_MESSAGE_FIELDS = (
    "feature", "amount", "unit", "ttl", "nonce", "merkleId", "ts", "payer", "gatewayPubkey",
)


def receipt_message(receipt) -> str:
    """Canonical message the gateway signs for ``receipt``."""
    return canonical_message(receipt, RECEIPT_MESSAGE_FIELDS)


@dataclass(frozen=True)
class ReceiptCheck:
    """Outcome of receipt verification."""
    ok: bool
    reason: Optional[str] = None
    replay_protected: bool = False


def verify_gateway_signature(message: str, sig_b64: str, pubkey_b64: str) -> bool:
    """Ed25519 check of a gateway signature. Never raises."""
    try:
        verify_key = VerifyKey(base64.b64decode(pubkey_b64, validate=True))
        verify_key.verify(message.encode("utf-8"), base64.b64decode(sig_b64, validate=True))
        return True
    except Exception as e:
        logger.debug(f"Gateway signature rejected: {e}")
        return False


def verify_receipt(
    receipt: Receipt,
    trusted_pubkey: Optional[str] = None,
    now: Optional[int] = None,
) -> ReceiptCheck:
    """
    Verify a receipt's freshness and gateway signature.

    Args:
        receipt: The receipt as presented by its holder
        trusted_pubkey: base64 gateway key the verifier accepts. When given,
            receipts naming any other key fail with bad-sig.
        now: Override for the current epoch second

    Returns:
        ReceiptCheck with ok=True, or ok=False and reason expired / bad-sig
    """
    if not is_fresh(receipt.ts, receipt.ttl, now):
        return ReceiptCheck(ok=False, reason=ExpiredError.code)

    if trusted_pubkey is not None and receipt.gatewayPubkey != trusted_pubkey:
        logger.warning(f"Receipt {receipt.nonce} names an untrusted gateway key")
        return ReceiptCheck(ok=False, reason=BadSignatureError.code)

    if not verify_gateway_signature(receipt_message(receipt), receipt.sig, receipt.gatewayPubkey):
        return ReceiptCheck(ok=False, reason=BadSignatureError.code)

    return ReceiptCheck(ok=True)


class ReceiptAuthority:
    """Signs settled invoices into receipts with the gateway identity."""

    def __init__(self, identity: GatewayIdentity, clock: Optional[Callable[[], int]] = None):
        self._identity = identity
        self._clock = clock or now_sec

    @property
    def public_key_b64(self) -> str:
        return self._identity.public_key_b64

    def sign(self, invoice: Invoice, payer: str) -> Receipt:
        """Build and sign the receipt for a settled invoice."""
        fields = dict(
            feature=invoice.feature,
            amount=invoice.amount,
            unit=invoice.unit,
            ttl=invoice.ttl,
            nonce=invoice.nonce,
            merkleId=invoice.merkleId,
            payer=payer,
            gatewayPubkey=self._identity.public_key_b64,
            ts=invoice.ts,
        )
        unsigned = Receipt(sig="", **fields)
        return Receipt(sig=self._identity.sign(receipt_message(unsigned)), **fields)

    def verify(self, receipt: Receipt, pin_gateway_key: bool = True) -> ReceiptCheck:
        """Verify a receipt, by default accepting only this gateway's key."""
        trusted = self._identity.public_key_b64 if pin_gateway_key else None
        return verify_receipt(receipt, trusted_pubkey=trusted, now=self._clock())

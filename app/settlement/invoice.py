# app/settlement/invoice.py
"""
Invoice issuance and canonical messages.

The canonical message is the exact string a wallet signs: selected fields
joined by ``|`` in a fixed order. Reordering a field or changing any value
invalidates every signature over it, so the field tuples below are part of
the wire protocol.
"""
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from app.core.config import settings
from app.settlement.identity import GatewayIdentity
from app.settlement.types import Invoice, now_sec

logger = logging.getLogger(__name__)

MESSAGE_DELIMITER = "|"

INVOICE_MESSAGE_FIELDS = ("feature", "amount", "unit", "nonce", "merkleId", "ts")


def canonical_message(obj, fields: Sequence[str]) -> str:
    """Join ``fields`` of ``obj`` with the message delimiter."""
    return MESSAGE_DELIMITER.join(str(getattr(obj, name)) for name in fields)


def invoice_message(invoice: Invoice) -> str:
    """Canonical message a wallet signs to pay ``invoice``."""
    return canonical_message(invoice, INVOICE_MESSAGE_FIELDS)


def make_nonce() -> str:
    """128 random bits, hex, no separators."""
    return uuid.uuid4().hex


def make_merkle_id() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


@dataclass(frozen=True)
class IssuedInvoice:
    """An invoice together with everything a wallet needs to pay it."""
    invoice: Invoice
    message_to_sign: str
    gateway_pubkey: str


class InvoiceIssuer:
    """Builds fresh invoices. Has no side effects beyond drawing randomness."""

    def __init__(self, identity: GatewayIdentity, clock: Optional[Callable[[], int]] = None):
        self._identity = identity
        self._clock = clock or now_sec

    def issue(
        self,
        feature: Optional[str] = None,
        amount: Optional[str] = None,
        unit: Optional[str] = None,
        ttl: Optional[int] = None,
        wallet: Optional[str] = None,
    ) -> IssuedInvoice:
        """
        Issue a new invoice, defaulting any omitted parameter from settings.

        Args:
            feature: Priced capability name
            amount: Decimal amount as a string
            unit: Currency or token symbol
            ttl: Validity window in seconds
            wallet: Expected wallet family hint

        Returns:
            IssuedInvoice with the invoice, its canonical message and the
            gateway public key
        """
        invoice = Invoice(
            feature=feature if feature is not None else settings.INVOICE_DEFAULT_FEATURE,
            amount=amount if amount is not None else settings.INVOICE_DEFAULT_AMOUNT,
            unit=unit if unit is not None else settings.INVOICE_DEFAULT_UNIT,
            ttl=ttl if ttl is not None else settings.INVOICE_DEFAULT_TTL_SEC,
            nonce=make_nonce(),
            merkleId=make_merkle_id(),
            ts=self._clock(),
            wallet=wallet if wallet is not None else settings.INVOICE_DEFAULT_WALLET,
        )
        logger.info(
            f"Issued invoice {invoice.nonce} for {invoice.feature}: "
            f"{invoice.amount} {invoice.unit}, ttl {invoice.ttl}s"
        )
        return IssuedInvoice(
            invoice=invoice,
            message_to_sign=invoice_message(invoice),
            gateway_pubkey=self._identity.public_key_b64,
        )

# app/settlement/service.py
"""
The settlement service.

One instance is built when the application starts and handed to request
handlers as a dependency. It exclusively owns the nonce ledger and receipt
archive; nothing else mutates them.
"""
import logging
from typing import Callable, List, Optional

from app.core.config import Settings
from app.settlement.archive import ReceiptArchive
from app.settlement.errors import (
    BadWalletProofError,
    ExpiredError,
    MissingBodyError,
    ReplayError,
)
from app.settlement.identity import GatewayIdentity
from app.settlement.invoice import InvoiceIssuer, IssuedInvoice, invoice_message
from app.settlement.ledger import NonceLedger
from app.settlement.receipts import ReceiptAuthority, ReceiptCheck
from app.settlement.types import Invoice, Receipt, WalletProof, is_fresh, now_sec
from app.settlement.verifier import verify_proof

logger = logging.getLogger(__name__)


class SettlementService:
    """Issues invoices, settles wallet proofs into receipts, verifies receipts."""

    def __init__(
        self,
        identity: GatewayIdentity,
        archive_capacity: int = 500,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._clock = clock or now_sec
        self.identity = identity
        self.issuer = InvoiceIssuer(identity, clock=self._clock)
        self.authority = ReceiptAuthority(identity, clock=self._clock)
        self._ledger = NonceLedger(clock=self._clock)
        self._archive = ReceiptArchive(capacity=archive_capacity)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SettlementService":
        """Build the service from configuration. Raises GatewayConfigError on a bad seed."""
        identity = GatewayIdentity.from_base64_seed(settings.GATEWAY_SEED_BASE64)
        logger.info(f"Gateway identity loaded, public key {identity.public_key_b64}")
        return cls(identity, archive_capacity=settings.RECEIPT_ARCHIVE_MAX)

    @property
    def gateway_pubkey(self) -> str:
        return self.identity.public_key_b64

    def issue_invoice(self, **params) -> IssuedInvoice:
        return self.issuer.issue(**params)

    def settle(self, invoice: Optional[Invoice], proof: Optional[WalletProof]) -> Receipt:
        """
        Settle an invoice with a wallet proof.

        Checks run in this order, stopping at the first failure:
        1. invoice and proof present (missing-body)
        2. invoice still fresh (expired)
        3. nonce not yet consumed (replay)
        4. wallet proof authentic (bad-wallet-proof)
        The nonce is then reserved atomically; losing that race to a
        concurrent settlement of the same invoice is also a replay.

        Returns:
            The signed receipt, already archived

        Raises:
            GatewayError subclass naming the failed check
        """
        if invoice is None or proof is None:
            raise MissingBodyError()

        if not is_fresh(invoice.ts, invoice.ttl, self._clock()):
            logger.warning(f"Settlement rejected, invoice {invoice.nonce} expired")
            raise ExpiredError()

        if self._ledger.seen(invoice.nonce):
            logger.warning(f"Settlement rejected, invoice {invoice.nonce} already settled")
            raise ReplayError()

        if not verify_proof(proof, invoice_message(invoice)):
            logger.warning(f"Settlement rejected, bad {proof.kind} proof from {proof.account}")
            raise BadWalletProofError()

        if not self._ledger.reserve(invoice.nonce, invoice.expires_at):
            logger.warning(f"Settlement rejected, invoice {invoice.nonce} settled concurrently")
            raise ReplayError()
        self._ledger.evict_expired()

        receipt = self.authority.sign(invoice, payer=proof.account)
        self._archive.record(receipt)
        logger.info(f"Settled invoice {invoice.nonce} for {invoice.feature}, payer {proof.account}")
        return receipt

    def verify_receipt(self, receipt: Receipt) -> ReceiptCheck:
        """
        Verify a receipt against this gateway's key.

        The replay_protected flag reports whether the nonce is held by the
        ledger. It is informational and never turns a valid receipt invalid.
        """
        check = self.authority.verify(receipt)
        if not check.ok:
            return check
        return ReceiptCheck(ok=True, replay_protected=self._ledger.seen(receipt.nonce))

    def is_nonce_consumed(self, nonce: str) -> bool:
        return self._ledger.seen(nonce)

    def evict_expired_nonces(self) -> int:
        return self._ledger.evict_expired()

    def recent_receipts(self) -> List[Receipt]:
        return self._archive.items()

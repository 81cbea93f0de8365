# app/settlement/types.py
"""Pydantic models for the objects exchanged during settlement."""
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def now_sec() -> int:
    """Current server wall-clock time in whole epoch seconds."""
    return int(time.time())


def is_fresh(ts: int, ttl: int, now: Optional[int] = None) -> bool:
    """True while ``now - ts`` has not exceeded ``ttl``."""
    current = now if now is not None else now_sec()
    return (current - ts) <= ttl


class Invoice(BaseModel):
    """
    A priced, time-boxed request for payment.

    The invoice is handed to the caller as-is and echoed back on settlement;
    its nonce binds it to at most one successful settlement.
    """
    model_config = ConfigDict(frozen=True)

    feature: str = Field(..., description="Priced capability, e.g. api.translate")
    amount: str = Field(..., description="Decimal amount as a string")
    unit: str = Field(..., description="Currency or token symbol")
    ttl: int = Field(..., description="Validity window in seconds")
    nonce: str = Field(..., description="Single-use random token")
    merkleId: str = Field(..., description="Random correlation identifier")
    ts: int = Field(..., description="Issuance time, epoch seconds")
    wallet: Optional[str] = Field(default=None, description="Expected wallet family hint")

    @property
    def expires_at(self) -> int:
        return self.ts + self.ttl


class WalletProof(BaseModel):
    """Caller supplied evidence of payment over an invoice's canonical message."""
    kind: str = Field(..., description="Wallet scheme, e.g. ed25519-base58 or solana")
    account: str = Field(..., description="base58 public key or 0x address")
    signatureBase64: Optional[str] = Field(default=None, description="Raw Ed25519 signature, base64")
    signatureHex: Optional[str] = Field(default=None, description="Recoverable secp256k1 signature, hex")


class Receipt(BaseModel):
    """Gateway-signed attestation that an invoice was settled."""
    model_config = ConfigDict(frozen=True)

    feature: str
    amount: str
    unit: str
    ttl: int
    nonce: str
    merkleId: str
    payer: str
    gatewayPubkey: str
    ts: int
    sig: str

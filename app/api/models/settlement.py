# app/api/models/settlement.py
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from app.settlement.types import Invoice, Receipt, WalletProof


class GatewayInfoResponse(BaseModel):
    """
    Response model for the gateway identity endpoint.
    """
    pubkeyBase64: str = Field(..., description="Gateway Ed25519 public key, base64")


class InvoiceRequest(BaseModel):
    """Request model for invoice issuance. Every field is optional and defaulted."""
    feature: Optional[str] = Field(default=None, description="Priced capability", example="api.translate")
    amount: Optional[str] = Field(default=None, description="Decimal amount as a string", example="0.01")
    unit: Optional[str] = Field(default=None, description="Currency or token symbol", example="SOL")
    ttlSec: Optional[int] = Field(default=None, gt=0, description="Invoice validity in seconds", example=90)
    wallet: Optional[str] = Field(default=None, description="Expected wallet family", example="phantom")

    @field_validator("amount", mode="before")
    @classmethod
    def stringify_amount(cls, v):
        # JSON numbers are accepted and priced by their decimal text
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class InvoiceResponse(BaseModel):
    """Response model for a freshly issued invoice."""
    ok: bool = True
    invoice: Invoice
    messageToSign: str = Field(..., description="Canonical message the wallet must sign")
    gatewayPubkey: str = Field(..., description="Gateway Ed25519 public key, base64")


class SettleRequest(BaseModel):
    """Request model for settlement: the issued invoice plus the wallet's proof."""
    invoice: Invoice
    walletProof: WalletProof


class SettleResponse(BaseModel):
    """Response model for a successful settlement."""
    ok: bool = True
    receipt: Receipt


class VerifyResponse(BaseModel):
    """Response model for receipt verification."""
    ok: bool
    error: Optional[str] = Field(default=None, description="expired or bad-sig when ok is false")
    replayProtected: Optional[bool] = Field(
        default=None,
        description="Whether the receipt's nonce is held by the replay ledger (advisory)"
    )


class ReceiptListResponse(BaseModel):
    """Response model for the recent receipt listing, most recent first."""
    ok: bool = True
    items: List[Receipt]


class TranslateResponse(BaseModel):
    ok: bool = True
    data: dict

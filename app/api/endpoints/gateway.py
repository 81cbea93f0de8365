# app/api/endpoints/gateway.py
from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError
from typing import Any, Dict, Optional
import json
import logging

from app.api.models.settlement import (
    GatewayInfoResponse,
    InvoiceRequest,
    InvoiceResponse,
    ReceiptListResponse,
    SettleRequest,
    SettleResponse,
    VerifyResponse,
)
from app.settlement import audit
from app.settlement.errors import BadReceiptJsonError, GatewayError, MissingBodyError
from app.settlement.guard import get_client_ip, get_settlement_service
from app.settlement.service import SettlementService
from app.settlement.types import Receipt

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Parse the request body as a JSON object, treating anything else as empty."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


@router.get("/gateway", response_model=GatewayInfoResponse)
async def get_gateway(
    service: SettlementService = Depends(get_settlement_service),
) -> GatewayInfoResponse:
    """
    Get the gateway's public signing key.

    Resource servers use this key to verify receipts offline.
    """
    return GatewayInfoResponse(pubkeyBase64=service.gateway_pubkey)


@router.post("/invoice", response_model=InvoiceResponse)
async def create_invoice(
    request: Request,
    payload: Optional[InvoiceRequest] = Body(default=None),
    service: SettlementService = Depends(get_settlement_service),
) -> InvoiceResponse:
    """
    Issue a priced, time-boxed invoice.

    The response carries the exact message the caller's wallet must sign.
    Omitted fields fall back to the configured defaults.
    """
    payload = payload or InvoiceRequest()
    issued = service.issue_invoice(
        feature=payload.feature,
        amount=payload.amount,
        unit=payload.unit,
        ttl=payload.ttlSec,
        wallet=payload.wallet,
    )
    invoice = issued.invoice
    audit.log_invoice_issued(
        get_client_ip(request), invoice.nonce, invoice.feature, invoice.amount, invoice.unit, invoice.ttl
    )
    return InvoiceResponse(
        invoice=invoice,
        messageToSign=issued.message_to_sign,
        gatewayPubkey=issued.gateway_pubkey,
    )


@router.post("/settle", response_model=SettleResponse)
async def settle_invoice(
    request: Request,
    service: SettlementService = Depends(get_settlement_service),
) -> SettleResponse:
    """
    Settle an invoice with a wallet proof and return a gateway-signed receipt.

    Raises:
        MissingBodyError: 400 if the invoice or wallet proof is absent or malformed
        ExpiredError: 400 if the invoice's ttl has elapsed
        ReplayError: 409 if the invoice was already settled
        BadWalletProofError: 401 if the wallet signature does not verify
    """
    client_ip = get_client_ip(request)
    body = await read_json_body(request)
    proof_body = body.get("walletProof")
    payer = proof_body.get("account") if isinstance(proof_body, dict) else None

    try:
        if not body.get("invoice") or not body.get("walletProof"):
            raise MissingBodyError()
        try:
            settle_request = SettleRequest.model_validate(body)
        except ValidationError as e:
            logger.warning(f"Malformed settlement request from {client_ip}: {e.error_count()} errors")
            raise MissingBodyError()

        receipt = service.settle(settle_request.invoice, settle_request.walletProof)

    except GatewayError as e:
        audit.log_payment_failed(client_ip, reason=e.code, stage="settle", wallet_address=payer)
        raise

    audit.log_payment_settled(
        client_ip, receipt.payer, receipt.nonce, settle_request.walletProof.kind, receipt.feature
    )
    return SettleResponse(receipt=receipt)


@router.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_receipt(
    request: Request,
    service: SettlementService = Depends(get_settlement_service),
) -> VerifyResponse:
    """
    Verify a receipt's freshness and gateway signature.

    Verification failures are reported in the body (ok=false) rather than as
    an error status. replayProtected reports whether the nonce is still held
    by the replay ledger and does not affect ok.
    """
    client_ip = get_client_ip(request)
    body = await read_json_body(request)

    raw_receipt = body.get("receipt")
    if not raw_receipt:
        raise MissingBodyError()
    try:
        receipt = Receipt.model_validate(raw_receipt)
    except ValidationError as e:
        logger.warning(f"Malformed receipt submitted for verification: {e.error_count()} errors")
        raise BadReceiptJsonError()

    check = service.verify_receipt(receipt)

    audit.log_receipt_verified(client_ip, receipt.nonce, check.ok, check.reason)
    if not check.ok:
        return VerifyResponse(ok=False, error=check.reason)
    return VerifyResponse(ok=True, replayProtected=check.replay_protected)


@router.get("/receipts", response_model=ReceiptListResponse)
async def list_receipts(
    service: SettlementService = Depends(get_settlement_service),
) -> ReceiptListResponse:
    """List recently issued receipts, most recent first. Operational use only."""
    return ReceiptListResponse(items=service.recent_receipts())

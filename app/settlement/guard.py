# app/settlement/guard.py
"""
FastAPI dependencies for settlement-protected resources.

Protected handlers declare ``Depends(ReceiptGuard("feature.name"))``. The
guard reads the receipt from the x402-receipt header and checks it before the
handler runs:
1. header present (402 missing-x402-receipt)
2. header parses as a receipt (400 bad-receipt-json)
3. receipt fresh (402 expired)
4. gateway signature valid (401 bad-sig)
5. receipt feature matches the resource (403 wrong-feature)
"""
import json
import logging

from fastapi import Request
from pydantic import ValidationError

from app.core.config import settings
from app.settlement import audit
from app.settlement.errors import (
    BadReceiptJsonError,
    BadSignatureError,
    ExpiredError,
    GatewayError,
    PaymentRequiredError,
    WrongFeatureError,
)
from app.settlement.service import SettlementService
from app.settlement.types import Receipt

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_settlement_service(request: Request) -> SettlementService:
    """Dependency returning the application's settlement service."""
    return request.app.state.settlement


def parse_receipt_header(header_value: str) -> Receipt:
    """
    Decode a receipt serialized as JSON in a request header.

    Raises:
        BadReceiptJsonError: If the value is not JSON or not a receipt
    """
    try:
        return Receipt.model_validate(json.loads(header_value))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Unparseable receipt header: {e}")
        raise BadReceiptJsonError()


class ReceiptGuard:
    """Dependency that admits only requests carrying a valid receipt for ``feature``."""

    def __init__(self, feature: str):
        self.feature = feature

    def __call__(self, request: Request) -> Receipt:
        client_ip = get_client_ip(request)
        service = get_settlement_service(request)

        try:
            receipt = self._check(request, service)
        except GatewayError as e:
            audit.log_access(client_ip, request.url.path, granted=False, reason=e.code)
            raise

        audit.log_access(client_ip, request.url.path, granted=True, wallet_address=receipt.payer)
        return receipt

    def _check(self, request: Request, service: SettlementService) -> Receipt:
        header_value = request.headers.get(settings.RECEIPT_HEADER)
        if not header_value:
            raise PaymentRequiredError()

        receipt = parse_receipt_header(header_value)

        check = service.authority.verify(receipt)
        if not check.ok:
            logger.warning(f"Receipt {receipt.nonce} refused for {self.feature}: {check.reason}")
            if check.reason == ExpiredError.code:
                raise ExpiredError(status_code=402)
            raise BadSignatureError()

        if receipt.feature != self.feature:
            logger.warning(f"Receipt for {receipt.feature} presented to {self.feature}")
            raise WrongFeatureError()

        return receipt

# app/api/endpoints/translate.py
from fastapi import APIRouter, Depends
import logging

from app.api.models.settlement import TranslateResponse
from app.core.config import settings
from app.settlement.guard import ReceiptGuard
from app.settlement.types import Receipt

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/translate", response_model=TranslateResponse)
async def translate(
    receipt: Receipt = Depends(ReceiptGuard(settings.TRANSLATE_FEATURE)),
) -> TranslateResponse:
    """
    Paid translation placeholder.

    Requires an x402-receipt header holding a fresh receipt for the
    translate feature.
    """
    logger.info(f"Translate served for payer {receipt.payer} (nonce {receipt.nonce})")
    return TranslateResponse(data={"text": "Hello → Halo"})

# app/settlement/errors.py
"""
Error taxonomy for the settlement protocol.

Every rejection carries a machine readable ``code`` and the HTTP status the
transport should answer with. The FastAPI exception handler in app.main turns
these into ``{"ok": false, "error": code}`` bodies.
"""
from typing import Optional


class GatewayConfigError(RuntimeError):
    """Raised at startup when the gateway identity cannot be configured."""


class GatewayError(Exception):
    """Base class for protocol rejections. Defaults to an opaque server error."""

    code = "server-error"
    status_code = 500

    def __init__(self, code: Optional[str] = None, status_code: Optional[int] = None):
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.code)


class MissingBodyError(GatewayError):
    code = "missing-body"
    status_code = 400


class ExpiredError(GatewayError):
    code = "expired"
    status_code = 400


class ReplayError(GatewayError):
    code = "replay"
    status_code = 409


class BadWalletProofError(GatewayError):
    code = "bad-wallet-proof"
    status_code = 401


class BadSignatureError(GatewayError):
    code = "bad-sig"
    status_code = 401


class WrongFeatureError(GatewayError):
    code = "wrong-feature"
    status_code = 403


class BadReceiptJsonError(GatewayError):
    code = "bad-receipt-json"
    status_code = 400


class PaymentRequiredError(GatewayError):
    code = "missing-x402-receipt"
    status_code = 402

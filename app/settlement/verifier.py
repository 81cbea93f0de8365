# app/settlement/verifier.py
"""
Wallet proof verification.

Supported schemes form a closed set:
- ed25519-base58 (alias: solana): base58 public key, base64 raw signature
- secp256k1-recoverable (alias: evm): 0x address, hex recoverable signature

Verification never raises. Malformed keys, signatures or unknown schemes all
verify to False, indistinguishable from a forged proof.
"""
import base64
import logging
from enum import Enum
from typing import Optional

import base58
from eth_account import Account
from eth_account.messages import encode_defunct
from nacl.signing import VerifyKey

from app.settlement.types import WalletProof

logger = logging.getLogger(__name__)


class WalletScheme(Enum):
    """Wallet signature schemes accepted as payment proof."""
    SOLANA_ED25519 = "ed25519-base58"
    EVM_RECOVERABLE = "secp256k1-recoverable"

    @classmethod
    def parse(cls, kind: Optional[str]) -> Optional["WalletScheme"]:
        """Resolve a proof ``kind`` (canonical name or alias) to a scheme, or None."""
        if not kind:
            return None
        try:
            return cls(kind)
        except ValueError:
            return SCHEME_ALIASES.get(kind)


SCHEME_ALIASES = {
    "solana": WalletScheme.SOLANA_ED25519,
    "evm": WalletScheme.EVM_RECOVERABLE,
}


def verify_ed25519_base58(message: str, account: str, signature_b64: str) -> bool:
    """
    Verify an Ed25519 signature from a base58-addressed wallet (e.g. Phantom).

    Args:
        message: The canonical message that was signed
        account: base58 encoded 32-byte public key
        signature_b64: base64 encoded 64-byte detached signature

    Returns:
        True only if the signature is valid for the message and key
    """
    try:
        public_key = base58.b58decode(account)
        signature = base64.b64decode(signature_b64, validate=True)
        VerifyKey(public_key).verify(message.encode("utf-8"), signature)
        return True
    except Exception as e:
        logger.debug(f"Ed25519 proof rejected for {account}: {e}")
        return False


def _recover_matches(signable, account: str, signature: bytes) -> bool:
    recovered = Account.recover_message(signable, signature=signature)
    return recovered.lower() == account.lower()


def _hex_to_bytes(value: str) -> bytes:
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def verify_secp256k1_recoverable(message: str, account: str, signature_hex: str) -> bool:
    """
    Verify a recoverable secp256k1 signature from an EVM wallet.

    Wallet front ends disagree on how the payload is encoded before signing,
    so two recoveries are attempted before rejecting:
    1. the message as EIP-191 personal-message text
    2. the message as raw bytes (a 0x hex payload decoded to bytes)

    Args:
        message: The canonical message that was signed
        account: 0x prefixed address, compared case-insensitively
        signature_hex: 65-byte signature, hex with or without 0x prefix

    Returns:
        True if either recovery yields ``account``
    """
    try:
        signature = _hex_to_bytes(signature_hex)
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug(f"EVM proof rejected, undecodable signature: {e}")
        return False

    try:
        if _recover_matches(encode_defunct(text=message), account, signature):
            return True
    except Exception as e:
        logger.debug(f"EVM text recovery failed: {e}")

    try:
        raw = _hex_to_bytes(message)
        return _recover_matches(encode_defunct(primitive=raw), account, signature)
    except Exception as e:
        logger.debug(f"EVM raw-bytes recovery failed: {e}")
        return False


def verify_wallet_proof(kind: Optional[str], message: str, account: str, signature: Optional[str]) -> bool:
    """
    Dispatch verification to the scheme named by ``kind``.

    Unknown kinds verify to False; there is no default scheme.
    """
    scheme = WalletScheme.parse(kind)
    if scheme is None:
        logger.warning(f"Unsupported wallet proof kind: {kind!r}")
        return False
    if not account or not signature:
        return False

    if scheme is WalletScheme.SOLANA_ED25519:
        return verify_ed25519_base58(message, account, signature)
    return verify_secp256k1_recoverable(message, account, signature)


def proof_signature(proof: WalletProof) -> Optional[str]:
    """Pick the signature encoding that matches the proof's scheme."""
    scheme = WalletScheme.parse(proof.kind)
    if scheme is WalletScheme.SOLANA_ED25519:
        return proof.signatureBase64
    if scheme is WalletScheme.EVM_RECOVERABLE:
        return proof.signatureHex
    return None


def verify_proof(proof: WalletProof, message: str) -> bool:
    """Verify a parsed WalletProof against a canonical message."""
    return verify_wallet_proof(proof.kind, message, proof.account, proof_signature(proof))

# app/settlement/identity.py
"""
Gateway signing identity.

A single Ed25519 keypair is created at process start, either derived from a
configured 32-byte seed (GATEWAY_SEED_BASE64) or generated at random, and held
for the lifetime of the process. Only the receipt authority signs with it.
"""
import base64
import binascii
import logging
from typing import Optional

from nacl.signing import SigningKey

from app.settlement.errors import GatewayConfigError

logger = logging.getLogger(__name__)

SEED_LENGTH = 32


class GatewayIdentity:
    """Owns the gateway's Ed25519 private key."""

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key
        self._public_key_b64 = base64.b64encode(bytes(signing_key.verify_key)).decode("ascii")

    @classmethod
    def load(cls, seed: Optional[bytes] = None) -> "GatewayIdentity":
        """
        Create the identity from a seed, or randomly when no seed is given.

        Args:
            seed: Exactly 32 bytes of key material

        Raises:
            GatewayConfigError: If the seed has any other length
        """
        if seed is None:
            logger.warning("No gateway seed configured, generating an ephemeral keypair")
            return cls(SigningKey.generate())

        if len(seed) != SEED_LENGTH:
            raise GatewayConfigError(
                f"Gateway seed must be {SEED_LENGTH} bytes, got {len(seed)}"
            )
        return cls(SigningKey(seed))

    @classmethod
    def from_base64_seed(cls, seed_b64: Optional[str]) -> "GatewayIdentity":
        """Create the identity from the base64 seed found in configuration."""
        if not seed_b64:
            return cls.load(None)

        try:
            seed = base64.b64decode(seed_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise GatewayConfigError(f"GATEWAY_SEED_BASE64 is not valid base64: {e}") from e

        return cls.load(seed)

    @property
    def public_key_b64(self) -> str:
        return self._public_key_b64

    def sign(self, message: str) -> str:
        """Sign the UTF-8 bytes of ``message`` and return the base64 detached signature."""
        signed = self._signing_key.sign(message.encode("utf-8"))
        return base64.b64encode(signed.signature).decode("ascii")

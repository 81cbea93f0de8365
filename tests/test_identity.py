# tests/test_identity.py
"""
Unit tests for the gateway signing identity.
"""
import base64

import pytest
from nacl.signing import VerifyKey

from app.settlement.errors import GatewayConfigError
from app.settlement.identity import GatewayIdentity

# RFC 8032 section 7.1, test 1
RFC8032_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PUBLIC = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")


class TestLoad:
    """Test keypair creation from seed or randomness."""

    def test_seed_derives_known_public_key(self):
        """A 32-byte seed derives the RFC 8032 public key."""
        identity = GatewayIdentity.load(RFC8032_SEED)
        assert base64.b64decode(identity.public_key_b64) == RFC8032_PUBLIC

    def test_seed_is_deterministic(self):
        """Same seed, same key."""
        a = GatewayIdentity.load(b"\x01" * 32)
        b = GatewayIdentity.load(b"\x01" * 32)
        assert a.public_key_b64 == b.public_key_b64

    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_wrong_seed_length_refused(self, length):
        """Any seed that is not exactly 32 bytes is a configuration error."""
        with pytest.raises(GatewayConfigError):
            GatewayIdentity.load(b"\x00" * length)

    def test_no_seed_generates_random_key(self):
        """Without a seed every load yields a different key."""
        a = GatewayIdentity.load()
        b = GatewayIdentity.load(None)
        assert a.public_key_b64 != b.public_key_b64


class TestFromBase64Seed:
    """Test loading the seed as it appears in configuration."""

    def test_valid_base64_seed(self):
        """A base64 seed loads the matching keypair."""
        seed_b64 = base64.b64encode(RFC8032_SEED).decode()
        identity = GatewayIdentity.from_base64_seed(seed_b64)
        assert base64.b64decode(identity.public_key_b64) == RFC8032_PUBLIC

    def test_empty_seed_generates_key(self):
        """Unset or empty configuration falls back to a random key."""
        assert GatewayIdentity.from_base64_seed(None).public_key_b64
        assert GatewayIdentity.from_base64_seed("").public_key_b64

    def test_invalid_base64_refused(self):
        """An undecodable seed refuses to start."""
        with pytest.raises(GatewayConfigError):
            GatewayIdentity.from_base64_seed("not base64 at all!")

    def test_short_decoded_seed_refused(self):
        """A decoded seed of the wrong length refuses to start."""
        with pytest.raises(GatewayConfigError):
            GatewayIdentity.from_base64_seed(base64.b64encode(b"\x00" * 16).decode())


class TestSign:
    """Test gateway signatures."""

    def test_signature_verifies_with_public_key(self):
        """Signatures verify against the published key."""
        identity = GatewayIdentity.load(b"\x07" * 32)
        sig = base64.b64decode(identity.sign("hello|world"))
        public_key = base64.b64decode(identity.public_key_b64)

        VerifyKey(public_key).verify(b"hello|world", sig)
        assert len(sig) == 64

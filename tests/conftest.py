# tests/conftest.py
"""
Shared fixtures: a controllable clock and real wallet keys for both schemes.
"""
import base64

import base58
import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from nacl.signing import SigningKey

from app.settlement.identity import GatewayIdentity
from app.settlement.service import SettlementService
from app.settlement.types import Invoice

T0 = 1_700_000_000


class FakeClock:
    """Epoch-second clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class SolanaWallet:
    """Ed25519 keypair addressed by its base58 public key, like Phantom."""

    def __init__(self, seed: bytes = None):
        self.key = SigningKey(seed) if seed else SigningKey.generate()
        self.account = base58.b58encode(bytes(self.key.verify_key)).decode("ascii")

    def sign(self, message: str) -> str:
        return base64.b64encode(self.key.sign(message.encode("utf-8")).signature).decode("ascii")

    def proof(self, message: str, kind: str = "solana") -> dict:
        return {"kind": kind, "account": self.account, "signatureBase64": self.sign(message)}


class EvmWallet:
    """secp256k1 account signing EIP-191 personal messages, like MetaMask."""

    def __init__(self):
        self.acct = Account.create()
        self.account = self.acct.address

    def sign(self, message: str) -> str:
        signed = self.acct.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def sign_hex_payload(self, hex_message: str) -> str:
        signed = self.acct.sign_message(encode_defunct(hexstr=hex_message))
        return "0x" + bytes(signed.signature).hex()

    def proof(self, message: str, kind: str = "evm") -> dict:
        return {"kind": kind, "account": self.account, "signatureHex": self.sign(message)}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def solana_wallet():
    return SolanaWallet()


@pytest.fixture
def evm_wallet():
    return EvmWallet()


@pytest.fixture
def identity():
    return GatewayIdentity.load(bytes(range(32)))


@pytest.fixture
def service(identity, clock):
    return SettlementService(identity, archive_capacity=500, clock=clock)


def make_invoice(**overrides) -> Invoice:
    """A fixed invoice issued at T0, with optional field overrides."""
    fields = dict(
        feature="api.translate",
        amount="0.01",
        unit="SOL",
        ttl=90,
        nonce="0123456789abcdef0123456789abcdef",
        merkleId="cd" * 32,
        ts=T0,
        wallet="phantom",
    )
    fields.update(overrides)
    return Invoice(**fields)

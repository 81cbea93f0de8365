"""
Receipt settlement protocol for the Quantum402 gateway.

This module implements the challenge/response flow that gates pay-per-call
access to protected resources: the gateway issues a priced, time-boxed
invoice, the caller signs its canonical message with a wallet, and the
gateway answers with a receipt signed by its own Ed25519 identity.

Key components:
- identity: the gateway's signing keypair
- verifier: wallet proof verification (Ed25519/base58, secp256k1 recovery)
- ledger: consumed-nonce bookkeeping for replay protection
- invoice: invoice issuance and canonical messages
- receipts: receipt signing and offline verification
- archive: bounded history of recently issued receipts
- service: the stateful settlement service wiring the pieces together
- guard: FastAPI dependency protecting paid resources
- audit: JSON lines audit trail

Configuration is loaded from environment variables via app.core.config.
"""

__version__ = "0.1.0"

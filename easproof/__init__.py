"""easproof: offchain attestations you can check later.

EIP-712 typed-data signing and verification for Ethereum Attestation Service
messages, plus the content-addressed identifiers (UIDs) that bind them.

Nothing here touches a chain. The on-chain verifier recomputes the same
digest; agreeing with it byte-for-byte is the whole contract.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.3.0"

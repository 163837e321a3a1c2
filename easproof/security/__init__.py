"""easproof.security

Signing capabilities. Keys stay on this side of the boundary.
"""

from .signers import LocalAccountSigner, SigningCapability, create_wallet

__all__ = [
    "LocalAccountSigner",
    "SigningCapability",
    "create_wallet",
]

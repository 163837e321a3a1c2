"""easproof.security.signers

Signing capabilities.

The engine never holds keys. It hands a capability an EIP-191 v0x01
SignableMessage (domain separator + struct hash) and gets 65 bytes back, or
an exception. Hardware wallets and remote signers implement the same
protocol; :class:`LocalAccountSigner` is the in-process one.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import SignableMessage
from eth_account.signers.local import LocalAccount


@runtime_checkable
class SigningCapability(Protocol):
    @property
    def address(self) -> str: ...

    async def sign(self, message: SignableMessage) -> bytes: ...


class LocalAccountSigner:
    """secp256k1 key in memory via eth-account. Fine for tests and CLIs."""

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str | bytes) -> LocalAccountSigner:
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return str(self._account.address)

    async def sign(self, message: SignableMessage) -> bytes:
        return bytes(self._account.sign_message(message).signature)

    def __repr__(self) -> str:
        return f"LocalAccountSigner(address={self.address})"


def create_wallet() -> LocalAccountSigner:
    """Fresh random key. Never persisted."""

    return LocalAccountSigner(Account.create())

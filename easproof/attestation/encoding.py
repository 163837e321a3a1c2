"""easproof.attestation.encoding

Constants and value normalizers shared by UIDs, messages and envelopes.

Wire format is `0x`-prefixed lowercase hex for bytes; checksummed addresses.
"""

from __future__ import annotations

from typing import Any

from eth_utils import is_address, to_checksum_address

from easproof.core.exceptions import InvalidFieldValue

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = "0x" + "00" * 32
ZERO_BYTES = "0x"
NO_EXPIRATION = 0


def norm_bytes(v: bytes | str, *, what: str = "bytes") -> bytes:
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    s = str(v)
    if not s.startswith("0x"):
        raise InvalidFieldValue(f"{what}: expected 0x-prefixed hex, got {v!r}")
    try:
        return bytes.fromhex(s[2:])
    except ValueError as e:
        raise InvalidFieldValue(f"{what}: not a hex string: {v!r}") from e


def norm_bytes32(v: bytes | str, *, what: str = "bytes32") -> bytes:
    b = norm_bytes(v, what=what)
    if len(b) != 32:
        raise InvalidFieldValue(f"{what}: expected 32 bytes, got {len(b)}")
    return b


def norm_addr(v: str, *, what: str = "address") -> str:
    s = str(v)
    if not is_address(s):
        raise InvalidFieldValue(f"{what}: not an address: {v!r}")
    return to_checksum_address(s)


def to_hex(b: bytes) -> str:
    return "0x" + bytes(b).hex()


def jsonable(v: Any) -> Any:
    """bytes -> 0x hex, recursively. Everything else passes through."""

    if isinstance(v, (bytes, bytearray)):
        return to_hex(bytes(v))
    if isinstance(v, dict):
        return {k: jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [jsonable(x) for x in v]
    return v

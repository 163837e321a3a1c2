"""easproof.eip712.hasher

EIP-712 struct and domain hashing.

    encodeType  = Primary(type name,...) + sorted referenced structs
    typeHash    = keccak(encodeType)
    hashStruct  = keccak(typeHash || encodeData(fields in declared order))
    digest      = keccak(0x19 0x01 || domainSeparator || hashStruct)

Atomic values are ABI words (eth_abi does the range checks); `bytes` and
`string` are hashed; structs are hashed recursively; arrays hash the
concatenation of their encoded elements.

All functions are pure. Nothing is cached.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError
from eth_account.messages import SignableMessage
from eth_utils import is_address, to_canonical_address
from eth_utils.crypto import keccak

from easproof.core.exceptions import InvalidFieldValue, UnknownFieldType, UnknownType
from easproof.eip712.domain import DOMAIN_FIELDS, Domain
from easproof.eip712.types import EIP712_DOMAIN, FieldDescriptor, TypeMap, normalize_types

_ARRAY_RE = re.compile(r"^(.+)\[(\d*)\]$")
_INT_RE = re.compile(r"^u?int(\d+)$")
_BYTES_N_RE = re.compile(r"^bytes(\d+)$")

_Types = dict[str, tuple[FieldDescriptor, ...]]


def _split_array(type_: str) -> tuple[str, int | None] | None:
    m = _ARRAY_RE.match(type_)
    if m is None:
        return None
    size = m.group(2)
    return m.group(1), (int(size) if size else None)


def _base_type(type_: str) -> str:
    while (arr := _split_array(type_)) is not None:
        type_ = arr[0]
    return type_


def is_atomic(type_: str) -> bool:
    if type_ in ("address", "bool", "string", "bytes"):
        return True
    m = _INT_RE.match(type_)
    if m is not None:
        bits = int(m.group(1))
        return 8 <= bits <= 256 and bits % 8 == 0
    m = _BYTES_N_RE.match(type_)
    if m is not None:
        return 1 <= int(m.group(1)) <= 32
    return False


def _check_field_type(type_: str, types: _Types) -> str | None:
    """Return the referenced struct name, None for atomic types; raise otherwise."""

    base = _base_type(type_)
    if base in types:
        return base
    if is_atomic(base):
        return None
    # Struct names are capitalized by convention; anything else is a bad primitive.
    if base[:1].isupper():
        raise UnknownType(f"referenced type {base!r} is not defined")
    raise UnknownFieldType(f"no encoding rule for type {type_!r}")


def _collect_deps(primary: str, types: _Types, found: set[str]) -> None:
    if primary in found:
        return
    if primary not in types:
        raise UnknownType(f"type {primary!r} is not defined")
    found.add(primary)
    for f in types[primary]:
        ref = _check_field_type(f.type, types)
        if ref is not None:
            _collect_deps(ref, types, found)


def _encode_type(primary_type: str, types: _Types) -> str:
    deps: set[str] = set()
    _collect_deps(primary_type, types, deps)
    deps.discard(primary_type)
    ordered = [primary_type, *sorted(deps)]
    return "".join(f"{name}({','.join(f'{f.type} {f.name}' for f in types[name])})" for name in ordered)


def encode_type(primary_type: str, types: TypeMap) -> str:
    """Canonical type string, e.g. ``Mail(Person from,Person to,string contents)Person(...)``."""

    return _encode_type(primary_type, normalize_types(types))


def hash_type(primary_type: str, types: TypeMap) -> bytes:
    return keccak(text=encode_type(primary_type, types))


def _to_bytes(value: Any, *, what: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        s = value.removeprefix("0x").removeprefix("0X")
        if len(s) % 2:
            s = "0" + s
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise InvalidFieldValue(f"{what}: not a hex string: {value!r}") from e
    raise InvalidFieldValue(f"{what}: expected bytes or hex string, got {type(value).__name__}")


def _to_int(value: Any, *, what: str) -> int:
    if isinstance(value, bool):
        raise InvalidFieldValue(f"{what}: expected integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError as e:
            raise InvalidFieldValue(f"{what}: not an integer: {value!r}") from e
    raise InvalidFieldValue(f"{what}: expected integer, got {type(value).__name__}")


def _abi_word(type_: str, value: Any, *, what: str) -> bytes:
    try:
        return abi_encode([type_], [value])
    except (EncodingError, TypeError) as e:
        raise InvalidFieldValue(f"{what}: {value!r} does not fit {type_}") from e


def _encode_value(type_: str, value: Any, types: _Types, what: str) -> bytes:
    arr = _split_array(type_)
    if arr is not None:
        elem_type, size = arr
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise InvalidFieldValue(f"{what}: expected a list for {type_}")
        if size is not None and len(value) != size:
            raise InvalidFieldValue(f"{what}: expected {size} elements, got {len(value)}")
        return keccak(b"".join(_encode_value(elem_type, v, types, f"{what}[{i}]") for i, v in enumerate(value)))

    if type_ in types:
        if not isinstance(value, Mapping):
            raise InvalidFieldValue(f"{what}: expected a struct for {type_}")
        return _hash_struct(type_, types, value, what)

    if type_ == "string":
        if isinstance(value, (bytes, bytearray)):
            return keccak(bytes(value))
        if not isinstance(value, str):
            raise InvalidFieldValue(f"{what}: expected string, got {type(value).__name__}")
        return keccak(text=value)

    if type_ == "bytes":
        return keccak(_to_bytes(value, what=what))

    if type_ == "address":
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            return b"\x00" * 12 + bytes(value)
        if not isinstance(value, str) or not is_address(value):
            raise InvalidFieldValue(f"{what}: not an address: {value!r}")
        return b"\x00" * 12 + to_canonical_address(value)

    if type_ == "bool":
        if not isinstance(value, bool):
            raise InvalidFieldValue(f"{what}: expected bool, got {type(value).__name__}")
        return _abi_word("bool", value, what=what)

    if _INT_RE.match(type_) and is_atomic(type_):
        return _abi_word(type_, _to_int(value, what=what), what=what)

    m = _BYTES_N_RE.match(type_)
    if m is not None and is_atomic(type_):
        b = _to_bytes(value, what=what)
        if len(b) != int(m.group(1)):
            raise InvalidFieldValue(f"{what}: expected {m.group(1)} bytes, got {len(b)}")
        return _abi_word(type_, b, what=what)

    raise UnknownFieldType(f"no encoding rule for type {type_!r}")


def _encode_data(primary_type: str, types: _Types, message: Mapping[str, Any], path: str) -> bytes:
    if primary_type not in types:
        raise UnknownType(f"type {primary_type!r} is not defined")
    parts = [keccak(text=_encode_type(primary_type, types))]
    for f in types[primary_type]:
        what = f"{path}.{f.name}"
        if f.name not in message:
            raise InvalidFieldValue(f"{what}: missing")
        parts.append(_encode_value(f.type, message[f.name], types, what))
    return b"".join(parts)


def _hash_struct(primary_type: str, types: _Types, message: Mapping[str, Any], path: str) -> bytes:
    return keccak(_encode_data(primary_type, types, message, path))


def encode_data(primary_type: str, types: TypeMap, message: Mapping[str, Any]) -> bytes:
    """typeHash followed by one 32-byte word per field. Not hashed."""

    return _encode_data(primary_type, normalize_types(types), message, primary_type)


def hash_struct(primary_type: str, types: TypeMap, message: Mapping[str, Any]) -> bytes:
    return keccak(encode_data(primary_type, types, message))


def domain_separator(domain: Domain) -> bytes:
    return hash_struct(EIP712_DOMAIN, {EIP712_DOMAIN: DOMAIN_FIELDS}, domain.as_typed_data())


def signable_message(
    domain: Domain, primary_type: str, types: TypeMap, message: Mapping[str, Any]
) -> SignableMessage:
    """EIP-191 version 0x01 container; eth_account hashes it to :func:`digest`."""

    return SignableMessage(
        version=b"\x01",
        header=domain_separator(domain),
        body=hash_struct(primary_type, types, message),
    )


def digest(domain: Domain, primary_type: str, types: TypeMap, message: Mapping[str, Any]) -> bytes:
    """The 32 bytes that actually get signed."""

    msg = signable_message(domain, primary_type, types, message)
    return keccak(b"\x19" + msg.version + msg.header + msg.body)

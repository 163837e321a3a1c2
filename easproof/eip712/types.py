"""easproof.eip712.types

Type schema registry.

Every historical message shape lives here, keyed by (protocol version,
message kind). Field order is part of the type hash, so an entry is never
edited once it ships: a new shape means a new protocol version.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any

from easproof.core.exceptions import InvalidTypes, UnknownType

EIP712_DOMAIN = "EIP712Domain"


class ProtocolVersion(IntEnum):
    LEGACY = 0
    VERSION1 = 1
    VERSION2 = 2


class MessageKind(StrEnum):
    ATTESTATION = "attestation"
    DELEGATED_ATTESTATION = "delegated-attestation"
    DELEGATED_REVOCATION = "delegated-revocation"
    DELEGATED_PROXY_ATTESTATION = "delegated-proxy-attestation"
    DELEGATED_PROXY_REVOCATION = "delegated-proxy-revocation"


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    name: str
    type: str

    def as_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def coerce(cls, v: FieldDescriptor | Mapping[str, Any]) -> FieldDescriptor:
        if isinstance(v, FieldDescriptor):
            return v
        try:
            return cls(name=str(v["name"]), type=str(v["type"]))
        except (KeyError, TypeError) as e:
            raise InvalidTypes(f"field descriptor needs name and type, got {v!r}") from e


TypeMap = Mapping[str, Sequence[FieldDescriptor | Mapping[str, Any]]]


def normalize_types(types: TypeMap) -> dict[str, tuple[FieldDescriptor, ...]]:
    """Coerce a wire-format ``types`` mapping into ordered descriptor tuples."""

    if not isinstance(types, Mapping):
        raise InvalidTypes(f"types must be a mapping, got {type(types).__name__}")
    out: dict[str, tuple[FieldDescriptor, ...]] = {}
    for name, fields in types.items():
        if isinstance(fields, (str, bytes)) or not isinstance(fields, Sequence):
            raise InvalidTypes(f"types[{name!r}] must be a list of fields")
        out[str(name)] = tuple(FieldDescriptor.coerce(f) for f in fields)
    return out


def _fields(text: str) -> tuple[FieldDescriptor, ...]:
    """Parse ``"bytes32 schema,address recipient"`` into descriptors."""

    out: list[FieldDescriptor] = []
    for part in text.split(","):
        type_, name = part.strip().split(" ")
        out.append(FieldDescriptor(name=name, type=type_))
    return tuple(out)


@dataclass(frozen=True, slots=True)
class TypeSchema:
    primary_type: str
    fields: tuple[FieldDescriptor, ...]
    domain_name: str

    def as_types(self) -> dict[str, list[dict[str, str]]]:
        return {self.primary_type: [f.as_dict() for f in self.fields]}

    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def matches(self, types: TypeMap) -> bool:
        """Structural equality against an envelope's ``types`` (EIP712Domain ignored)."""

        try:
            norm = normalize_types(types)
        except InvalidTypes:
            return False
        norm.pop(EIP712_DOMAIN, None)
        return norm == {self.primary_type: self.fields}


_OFFCHAIN = "EAS Attestation"
_EAS = "EAS"
_PROXY = "EIP712Proxy"

_ATTEST_BODY = "bytes32 schema,address recipient,uint64 time,uint64 expirationTime,bool revocable,bytes32 refUID,bytes data"
_DELEGATED_BODY = "bytes32 schema,address recipient,uint64 expirationTime,bool revocable,bytes32 refUID,bytes data"

_V = ProtocolVersion
_K = MessageKind

_BUILTIN: dict[tuple[ProtocolVersion, MessageKind], TypeSchema] = {
    # Offchain attestations
    (_V.LEGACY, _K.ATTESTATION): TypeSchema("Attestation", _fields(_ATTEST_BODY), _OFFCHAIN),
    (_V.VERSION1, _K.ATTESTATION): TypeSchema("Attest", _fields("uint16 version," + _ATTEST_BODY), _OFFCHAIN),
    (_V.VERSION2, _K.ATTESTATION): TypeSchema(
        "Attest", _fields("uint16 version," + _ATTEST_BODY + ",bytes32 salt"), _OFFCHAIN
    ),
    # Delegated via the EAS contract itself (nonce-protected)
    (_V.LEGACY, _K.DELEGATED_ATTESTATION): TypeSchema("Attest", _fields(_DELEGATED_BODY + ",uint256 nonce"), _EAS),
    (_V.LEGACY, _K.DELEGATED_REVOCATION): TypeSchema("Revoke", _fields("bytes32 schema,bytes32 uid,uint256 nonce"), _EAS),
    (_V.VERSION1, _K.DELEGATED_ATTESTATION): TypeSchema(
        "Attest", _fields(_DELEGATED_BODY + ",uint256 value,uint256 nonce,uint64 deadline"), _EAS
    ),
    (_V.VERSION1, _K.DELEGATED_REVOCATION): TypeSchema(
        "Revoke", _fields("bytes32 schema,bytes32 uid,uint256 value,uint256 nonce,uint64 deadline"), _EAS
    ),
    (_V.VERSION2, _K.DELEGATED_ATTESTATION): TypeSchema(
        "Attest", _fields("address attester," + _DELEGATED_BODY + ",uint256 value,uint256 nonce,uint64 deadline"), _EAS
    ),
    (_V.VERSION2, _K.DELEGATED_REVOCATION): TypeSchema(
        "Revoke",
        _fields("address revoker,bytes32 schema,bytes32 uid,uint256 value,uint256 nonce,uint64 deadline"),
        _EAS,
    ),
    # Delegated via EIP712Proxy (deadline-protected, no nonce)
    (_V.LEGACY, _K.DELEGATED_PROXY_ATTESTATION): TypeSchema(
        "Attest", _fields(_DELEGATED_BODY + ",uint256 value,uint64 deadline"), _PROXY
    ),
    (_V.LEGACY, _K.DELEGATED_PROXY_REVOCATION): TypeSchema(
        "Revoke", _fields("bytes32 schema,bytes32 uid,uint256 value,uint64 deadline"), _PROXY
    ),
    (_V.VERSION1, _K.DELEGATED_PROXY_ATTESTATION): TypeSchema(
        "Attest", _fields(_DELEGATED_BODY + ",uint256 value,uint64 deadline"), _PROXY
    ),
    (_V.VERSION1, _K.DELEGATED_PROXY_REVOCATION): TypeSchema(
        "Revoke", _fields("bytes32 schema,bytes32 uid,uint256 value,uint64 deadline"), _PROXY
    ),
    (_V.VERSION2, _K.DELEGATED_PROXY_ATTESTATION): TypeSchema(
        "Attest", _fields("address attester," + _DELEGATED_BODY + ",uint256 value,uint64 deadline"), _PROXY
    ),
    (_V.VERSION2, _K.DELEGATED_PROXY_REVOCATION): TypeSchema(
        "Revoke", _fields("address revoker,bytes32 schema,bytes32 uid,uint256 value,uint64 deadline"), _PROXY
    ),
}


class TypeSchemaRegistry:
    """Append-only map of (version, kind) -> TypeSchema."""

    def __init__(self, entries: Mapping[tuple[ProtocolVersion, MessageKind], TypeSchema] | None = None) -> None:
        self._entries: dict[tuple[ProtocolVersion, MessageKind], TypeSchema] = dict(
            _BUILTIN if entries is None else entries
        )

    def schema_for(self, version: ProtocolVersion | int, kind: MessageKind | str) -> TypeSchema:
        try:
            key = (ProtocolVersion(version), MessageKind(kind))
        except ValueError as e:
            raise UnknownType(f"no schema for version={version!r} kind={kind!r}") from e
        schema = self._entries.get(key)
        if schema is None:
            raise UnknownType(f"no schema for version={key[0].name} kind={key[1].value}")
        return schema

    def register(self, version: ProtocolVersion, kind: MessageKind, schema: TypeSchema) -> None:
        key = (ProtocolVersion(version), MessageKind(kind))
        existing = self._entries.get(key)
        if existing is not None and existing != schema:
            raise InvalidTypes(f"schema for version={key[0].name} kind={key[1].value} already defined")
        self._entries[key] = schema

    def versions_for(self, kind: MessageKind | str) -> list[ProtocolVersion]:
        k = MessageKind(kind)
        return sorted(v for (v, kk) in self._entries if kk == k)

    def detect_version(self, kind: MessageKind | str, types: TypeMap) -> ProtocolVersion:
        """Pick the historical version whose schema matches ``types`` exactly.

        Newest wins when several versions share a shape (proxy Legacy/Version1).
        """

        for v in reversed(self.versions_for(kind)):
            if self._entries[(v, MessageKind(kind))].matches(types):
                return v
        raise InvalidTypes(f"types match no known {MessageKind(kind).value} schema")

    def __iter__(self) -> Iterator[tuple[tuple[ProtocolVersion, MessageKind], TypeSchema]]:
        return iter(sorted(self._entries.items()))


DEFAULT_REGISTRY = TypeSchemaRegistry()


def schema_for(version: ProtocolVersion | int, kind: MessageKind | str) -> TypeSchema:
    return DEFAULT_REGISTRY.schema_for(version, kind)

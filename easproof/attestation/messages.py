"""easproof.attestation.messages

Request value objects and their projection onto versioned schemas.

Each request knows every field any version could want. The registry's
TypeSchema decides which of them, in what order, end up in the message, so
there is one projection instead of one builder per (version, flavour).

Nonces are inputs. Read them from the chain collaborator; nothing here
allocates or increments them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from easproof.attestation.encoding import (
    NO_EXPIRATION,
    ZERO_BYTES,
    ZERO_BYTES32,
    norm_addr,
    norm_bytes,
    norm_bytes32,
    to_hex,
)
from easproof.core.exceptions import InvalidFieldValue
from easproof.eip712.types import ProtocolVersion, TypeSchema


def project(full: Mapping[str, Any], schema: TypeSchema) -> dict[str, Any]:
    """Keep exactly the schema's fields, in schema order."""

    out: dict[str, Any] = {}
    for f in schema.fields:
        if full.get(f.name) is None:
            raise InvalidFieldValue(f"{schema.primary_type}.{f.name}: required by this schema version")
        out[f.name] = full[f.name]
    return out


@dataclass(frozen=True, slots=True)
class OffchainAttestationParams:
    schema: str
    recipient: str
    time: int
    expiration_time: int = NO_EXPIRATION
    revocable: bool = True
    ref_uid: str = ZERO_BYTES32
    data: bytes | str = ZERO_BYTES
    salt: bytes | str | None = None

    def to_message(self, schema: TypeSchema, version: ProtocolVersion | int) -> dict[str, Any]:
        full: dict[str, Any] = {
            "version": int(version),
            "schema": to_hex(norm_bytes32(self.schema, what="schema")),
            "recipient": norm_addr(self.recipient, what="recipient"),
            "time": int(self.time),
            "expirationTime": int(self.expiration_time),
            "revocable": bool(self.revocable),
            "refUID": to_hex(norm_bytes32(self.ref_uid, what="refUID")),
            "data": to_hex(norm_bytes(self.data, what="data")),
            "salt": None if self.salt is None else to_hex(norm_bytes32(self.salt, what="salt")),
        }
        return project(full, schema)


@dataclass(frozen=True, slots=True)
class DelegatedAttestationRequest:
    attester: str
    schema: str
    recipient: str
    expiration_time: int = NO_EXPIRATION
    revocable: bool = True
    ref_uid: str = ZERO_BYTES32
    data: bytes | str = ZERO_BYTES
    value: int = 0
    nonce: int | None = None  # EAS-verified flavours only
    deadline: int = 0

    def to_message(self, schema: TypeSchema) -> dict[str, Any]:
        full: dict[str, Any] = {
            "attester": norm_addr(self.attester, what="attester"),
            "schema": to_hex(norm_bytes32(self.schema, what="schema")),
            "recipient": norm_addr(self.recipient, what="recipient"),
            "expirationTime": int(self.expiration_time),
            "revocable": bool(self.revocable),
            "refUID": to_hex(norm_bytes32(self.ref_uid, what="refUID")),
            "data": to_hex(norm_bytes(self.data, what="data")),
            "value": int(self.value),
            "nonce": None if self.nonce is None else int(self.nonce),
            "deadline": int(self.deadline),
        }
        return project(full, schema)


@dataclass(frozen=True, slots=True)
class DelegatedRevocationRequest:
    revoker: str
    schema: str
    uid: str
    value: int = 0
    nonce: int | None = None
    deadline: int = 0

    def to_message(self, schema: TypeSchema) -> dict[str, Any]:
        full: dict[str, Any] = {
            "revoker": norm_addr(self.revoker, what="revoker"),
            "schema": to_hex(norm_bytes32(self.schema, what="schema")),
            "uid": to_hex(norm_bytes32(self.uid, what="uid")),
            "value": int(self.value),
            "nonce": None if self.nonce is None else int(self.nonce),
            "deadline": int(self.deadline),
        }
        return project(full, schema)

"""easproof.attestation.envelope

The signed typed-data envelope: the only thing signer and verifier exchange.

    {domain, primaryType, types, message, signature: {v, r, s}}

Dataclasses at runtime, pydantic at the JSON boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from easproof.attestation.encoding import jsonable, norm_bytes, to_hex
from easproof.core.exceptions import StructuralError
from easproof.eip712.domain import Domain
from easproof.eip712.types import FieldDescriptor, ProtocolVersion, normalize_types


@dataclass(frozen=True, slots=True)
class Signature:
    v: int
    r: str
    s: str

    def to_bytes(self) -> bytes:
        r = norm_bytes(self.r, what="signature.r").rjust(32, b"\x00")
        s = norm_bytes(self.s, what="signature.s").rjust(32, b"\x00")
        return r + s + bytes([int(self.v) & 0xFF])

    @classmethod
    def from_bytes(cls, raw: bytes) -> Signature:
        if len(raw) != 65:
            raise StructuralError(f"signature must be 65 bytes, got {len(raw)}")
        v = raw[64]
        if v < 27:
            v += 27
        return cls(v=v, r=to_hex(raw[:32]), s=to_hex(raw[32:64]))

    def as_dict(self) -> dict[str, Any]:
        return {"v": int(self.v), "r": self.r, "s": self.s}


@dataclass(frozen=True)
class SignedEnvelope:
    domain: Domain
    primary_type: str
    types: dict[str, tuple[FieldDescriptor, ...]]
    message: dict[str, Any]
    signature: Signature

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain.as_typed_data(),
            "primaryType": self.primary_type,
            "types": {k: [f.as_dict() for f in v] for k, v in self.types.items()},
            "message": jsonable(dict(self.message)),
            "signature": self.signature.as_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> SignedEnvelope:
        try:
            m = _EnvelopeIn.model_validate(d)
        except ValidationError as e:
            raise StructuralError(f"malformed envelope: {e.error_count()} validation error(s)") from e

        sig = m.signature
        signature = (
            Signature.from_bytes(norm_bytes(sig, what="signature"))
            if isinstance(sig, str)
            else Signature(v=sig.v, r=sig.r, s=sig.s)
        )
        return cls(
            domain=Domain.from_typed_data(m.domain),
            primary_type=m.primaryType,
            types=normalize_types({k: [f.model_dump() for f in v] for k, v in m.types.items()}),
            message=dict(m.message),
            signature=signature,
        )


@dataclass(frozen=True)
class SignedOffchainAttestation:
    envelope: SignedEnvelope
    uid: str
    version: ProtocolVersion

    @property
    def message(self) -> dict[str, Any]:
        return self.envelope.message

    def to_dict(self) -> dict[str, Any]:
        return {**self.envelope.to_dict(), "uid": self.uid, "version": int(self.version)}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> SignedOffchainAttestation:
        if "uid" not in d:
            raise StructuralError("offchain attestation is missing its uid")
        envelope = SignedEnvelope.from_dict(d)
        raw_version = d.get("version", envelope.message.get("version", ProtocolVersion.LEGACY))
        try:
            version = ProtocolVersion(int(raw_version))
        except (TypeError, ValueError) as e:
            raise StructuralError(f"unknown offchain attestation version: {raw_version!r}") from e
        return cls(envelope=envelope, uid=str(d["uid"]).lower(), version=version)


class _SignatureIn(BaseModel):
    v: int
    r: str
    s: str


class _FieldIn(BaseModel):
    name: str
    type: str


class _EnvelopeIn(BaseModel):
    domain: dict[str, Any]
    primaryType: str
    types: dict[str, list[_FieldIn]]
    message: dict[str, Any]
    signature: _SignatureIn | str


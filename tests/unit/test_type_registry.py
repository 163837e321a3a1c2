from __future__ import annotations

import pytest

from easproof.core.exceptions import InvalidTypes, UnknownType
from easproof.eip712.types import (
    DEFAULT_REGISTRY,
    FieldDescriptor,
    MessageKind,
    ProtocolVersion,
    TypeSchema,
    TypeSchemaRegistry,
    normalize_types,
    schema_for,
)


def test_every_kind_has_every_version() -> None:
    for kind in MessageKind:
        assert DEFAULT_REGISTRY.versions_for(kind) == [
            ProtocolVersion.LEGACY,
            ProtocolVersion.VERSION1,
            ProtocolVersion.VERSION2,
        ]
    assert len(list(DEFAULT_REGISTRY)) == 15


def test_offchain_shapes_by_version() -> None:
    legacy = schema_for(ProtocolVersion.LEGACY, MessageKind.ATTESTATION)
    v1 = schema_for(ProtocolVersion.VERSION1, MessageKind.ATTESTATION)
    v2 = schema_for(ProtocolVersion.VERSION2, MessageKind.ATTESTATION)

    assert legacy.primary_type == "Attestation"
    assert legacy.field_names() == ("schema", "recipient", "time", "expirationTime", "revocable", "refUID", "data")
    assert v1.primary_type == "Attest"
    assert v1.field_names()[0] == "version"
    assert v1.fields[0] == FieldDescriptor("version", "uint16")
    assert v2.field_names() == v1.field_names() + ("salt",)
    assert {legacy.domain_name, v1.domain_name, v2.domain_name} == {"EAS Attestation"}


def test_delegated_shapes_by_version() -> None:
    legacy = schema_for(0, "delegated-attestation")
    v1 = schema_for(1, "delegated-attestation")
    v2 = schema_for(2, "delegated-attestation")
    assert legacy.field_names()[-1] == "nonce"
    assert v1.field_names()[-3:] == ("value", "nonce", "deadline")
    assert v2.field_names()[0] == "attester"

    revoke = schema_for(2, "delegated-revocation")
    assert revoke.primary_type == "Revoke"
    assert revoke.field_names() == ("revoker", "schema", "uid", "value", "nonce", "deadline")


def test_proxy_shapes_have_no_nonce() -> None:
    for version in ProtocolVersion:
        for kind in (MessageKind.DELEGATED_PROXY_ATTESTATION, MessageKind.DELEGATED_PROXY_REVOCATION):
            s = schema_for(version, kind)
            assert "nonce" not in s.field_names()
            assert "deadline" in s.field_names()
            assert s.domain_name == "EIP712Proxy"


def test_unknown_key_raises_unknown_type() -> None:
    with pytest.raises(UnknownType):
        schema_for(5, MessageKind.ATTESTATION)
    with pytest.raises(UnknownType):
        schema_for(ProtocolVersion.VERSION2, "nope")
    empty = TypeSchemaRegistry({})
    with pytest.raises(UnknownType):
        empty.schema_for(ProtocolVersion.VERSION2, MessageKind.ATTESTATION)


def test_register_is_append_only() -> None:
    reg = TypeSchemaRegistry()
    existing = reg.schema_for(ProtocolVersion.VERSION2, MessageKind.ATTESTATION)
    reg.register(ProtocolVersion.VERSION2, MessageKind.ATTESTATION, existing)  # same shape is a no-op

    changed = TypeSchema(existing.primary_type, existing.fields[:-1], existing.domain_name)
    with pytest.raises(InvalidTypes):
        reg.register(ProtocolVersion.VERSION2, MessageKind.ATTESTATION, changed)


def test_registries_are_independent() -> None:
    reg = TypeSchemaRegistry({})
    s = schema_for(ProtocolVersion.LEGACY, MessageKind.ATTESTATION)
    reg.register(ProtocolVersion.LEGACY, MessageKind.ATTESTATION, s)
    assert reg.versions_for(MessageKind.ATTESTATION) == [ProtocolVersion.LEGACY]
    assert len(DEFAULT_REGISTRY.versions_for(MessageKind.ATTESTATION)) == 3


def test_detect_version_from_types() -> None:
    for version in ProtocolVersion:
        s = schema_for(version, MessageKind.ATTESTATION)
        assert DEFAULT_REGISTRY.detect_version(MessageKind.ATTESTATION, s.as_types()) == version


def test_detect_version_prefers_newest_for_shared_shapes() -> None:
    legacy = schema_for(ProtocolVersion.LEGACY, MessageKind.DELEGATED_PROXY_ATTESTATION)
    got = DEFAULT_REGISTRY.detect_version(MessageKind.DELEGATED_PROXY_ATTESTATION, legacy.as_types())
    assert got == ProtocolVersion.VERSION1


def test_detect_version_ignores_domain_type_and_rejects_unknown_shapes() -> None:
    s = schema_for(ProtocolVersion.VERSION2, MessageKind.ATTESTATION)
    types = {
        "EIP712Domain": [{"name": "name", "type": "string"}],
        **s.as_types(),
    }
    assert DEFAULT_REGISTRY.detect_version(MessageKind.ATTESTATION, types) == ProtocolVersion.VERSION2

    with pytest.raises(InvalidTypes):
        DEFAULT_REGISTRY.detect_version(MessageKind.ATTESTATION, {"Attest": [{"name": "x", "type": "uint8"}]})


def test_normalize_types_rejects_bad_shapes() -> None:
    with pytest.raises(InvalidTypes):
        normalize_types({"Attest": "bytes32 schema"})
    with pytest.raises(InvalidTypes):
        normalize_types({"Attest": [{"name": "schema"}]})
    with pytest.raises(InvalidTypes):
        normalize_types(["Attest"])  # type: ignore[arg-type]

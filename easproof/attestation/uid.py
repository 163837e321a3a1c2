"""easproof.attestation.uid

Content-addressed identifiers.

All three formulas are keccak256 over ``abi.encodePacked`` of a fixed field
tuple:

    schema UID       string schema, address resolver, bool revocable
    attestation UID  bytes32 schema, address recipient, address attester,
                     uint64 time, uint64 expirationTime, bool revocable,
                     bytes32 refUID, bytes data, uint32 bump
    offchain UID     [uint16 version], bytes schemaText, address recipient,
                     address 0x0, uint64 time, uint64 expirationTime,
                     bool revocable, bytes32 refUID, bytes data,
                     [bytes32 salt], uint32 0

The first two match the SchemaRegistry and EAS contracts. The offchain layout
matches the reference SDK, which packs the schema UID as the UTF-8 bytes of
its hex text; keep that quirk or existing offchain UIDs stop matching.
"""

from __future__ import annotations

import logging

from eth_abi.packed import encode_packed
from eth_utils.crypto import keccak

from easproof.attestation.encoding import ZERO_ADDRESS, norm_addr, norm_bytes, norm_bytes32, to_hex
from easproof.core.exceptions import InvalidFieldValue
from easproof.eip712.types import ProtocolVersion

logger = logging.getLogger(__name__)


def _packed_keccak(types: list[str], values: list[object]) -> str:
    return to_hex(keccak(encode_packed(types, values)))


def schema_uid(schema: str, resolver: str = ZERO_ADDRESS, revocable: bool = True) -> str:
    """UID the SchemaRegistry assigns to ``register(schema, resolver, revocable)``."""

    return _packed_keccak(
        ["string", "address", "bool"],
        [str(schema), norm_addr(resolver, what="resolver"), bool(revocable)],
    )


def attestation_uid(
    schema: bytes | str,
    recipient: str,
    attester: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: bytes | str,
    data: bytes | str,
    bump: int = 0,
) -> str:
    """UID the EAS contract assigns to an onchain attestation.

    ``bump`` only moves off zero when the contract hits a UID collision.
    """

    if bump:
        logger.warning("attestation uid computed with non-zero bump=%d", bump)
    return _packed_keccak(
        ["bytes32", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes", "uint32"],
        [
            norm_bytes32(schema, what="schema"),
            norm_addr(recipient, what="recipient"),
            norm_addr(attester, what="attester"),
            int(time),
            int(expiration_time),
            bool(revocable),
            norm_bytes32(ref_uid, what="refUID"),
            norm_bytes(data, what="data"),
            int(bump),
        ],
    )


def offchain_attestation_uid(
    version: ProtocolVersion | int,
    schema: bytes | str,
    recipient: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: bytes | str,
    data: bytes | str,
    salt: bytes | str | None = None,
) -> str:
    version = ProtocolVersion(version)
    schema_text = to_hex(norm_bytes32(schema, what="schema")).encode("utf-8")

    types = ["bytes", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes"]
    values: list[object] = [
        schema_text,
        norm_addr(recipient, what="recipient"),
        ZERO_ADDRESS,
        int(time),
        int(expiration_time),
        bool(revocable),
        norm_bytes32(ref_uid, what="refUID"),
        norm_bytes(data, what="data"),
    ]

    if version >= ProtocolVersion.VERSION1:
        types.insert(0, "uint16")
        values.insert(0, int(version))

    if version >= ProtocolVersion.VERSION2:
        if salt is None:
            raise InvalidFieldValue("salt: required from VERSION2 onwards")
        types.append("bytes32")
        values.append(norm_bytes32(salt, what="salt"))

    types.append("uint32")
    values.append(0)
    return _packed_keccak(types, values)

"""easproof.attestation.verifier

Verification.

Checks run in a fixed order and the first failure wins:

1. expected signer is a non-zero address        -> InvalidAddress
2. domain chainId, verifyingContract, name       -> InvalidDomain(field)
3. primaryType                                   -> InvalidPrimaryType
4. types[primaryType] (names, types, order)      -> InvalidTypes
5. recover signer from the recomputed digest     -> True / False

The domain ``version`` string is not compared in step 2. A wrong version
changes the digest, so step 5 reports it as a plain mismatch (``False``).
Callers depend on that distinction; keep it.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_utils import is_address, to_canonical_address, to_checksum_address

from easproof.attestation.envelope import SignedEnvelope, SignedOffchainAttestation
from easproof.attestation.uid import offchain_attestation_uid
from easproof.core.exceptions import (
    InvalidAddress,
    InvalidDomain,
    InvalidPrimaryType,
    InvalidTypes,
    StructuralError,
)
from easproof.eip712.domain import Domain, DomainResolver
from easproof.eip712.hasher import signable_message
from easproof.eip712.types import (
    DEFAULT_REGISTRY,
    EIP712_DOMAIN,
    MessageKind,
    ProtocolVersion,
    TypeSchema,
    TypeSchemaRegistry,
)

logger = logging.getLogger(__name__)

_ZERO = b"\x00" * 20


def _check_address(expected_signer: str) -> str:
    if not isinstance(expected_signer, str) or not is_address(expected_signer):
        raise InvalidAddress(f"not an address: {expected_signer!r}")
    if to_canonical_address(expected_signer) == _ZERO:
        raise InvalidAddress("expected signer is the zero address")
    return to_checksum_address(expected_signer)


def _check_domain(expected: Domain, actual: Domain) -> None:
    if actual.chain_id != expected.chain_id:
        raise InvalidDomain("chainId", expected.chain_id, actual.chain_id)
    if actual.verifying_contract != expected.verifying_contract:
        raise InvalidDomain("verifyingContract", expected.verifying_contract, actual.verifying_contract)
    if actual.name != expected.name:
        raise InvalidDomain("name", expected.name, actual.name)


def _check_types(schema: TypeSchema, envelope: SignedEnvelope) -> None:
    types = {k: v for k, v in envelope.types.items() if k != EIP712_DOMAIN}
    if schema.primary_type not in types:
        raise InvalidTypes(f"types has no definition for {schema.primary_type!r}")
    extra = sorted(set(types) - {schema.primary_type})
    if extra:
        raise InvalidTypes(f"unexpected type definitions: {', '.join(extra)}")
    if tuple(types[schema.primary_type]) != schema.fields:
        raise InvalidTypes(f"{schema.primary_type} fields differ from the registered schema")


class Verifier:
    """Verifies envelopes against one session's domains and one protocol version."""

    def __init__(
        self,
        resolver: DomainResolver,
        *,
        version: ProtocolVersion | int = ProtocolVersion.VERSION2,
        registry: TypeSchemaRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self._resolver = resolver
        self.version = ProtocolVersion(version)
        self._registry = registry

    def check_structure(self, expected_signer: str, envelope: SignedEnvelope, kind: MessageKind | str) -> str:
        """Steps 1-4. Raises on the first violation; returns the checksummed signer."""

        signer = _check_address(expected_signer)
        kind = MessageKind(kind)
        _check_domain(self._resolver.resolve(kind, self.version), envelope.domain)

        schema = self._registry.schema_for(self.version, kind)
        if envelope.primary_type != schema.primary_type:
            raise InvalidPrimaryType(f"expected {schema.primary_type!r}, got {envelope.primary_type!r}")
        _check_types(schema, envelope)
        return signer

    def verify(
        self,
        expected_signer: str,
        envelope: SignedEnvelope,
        kind: MessageKind | str,
        *,
        strict: bool = True,
    ) -> bool:
        """True iff ``expected_signer`` signed ``envelope``.

        strict=True raises StructuralError subclasses; strict=False logs them
        and returns False.
        """

        try:
            signer = self.check_structure(expected_signer, envelope, kind)
            signable = signable_message(envelope.domain, envelope.primary_type, envelope.types, envelope.message)
        except StructuralError as e:
            if strict:
                raise
            logger.warning("rejected %s envelope: %s: %s", kind, type(e).__name__, e)
            return False

        try:
            recovered = str(Account.recover_message(signable, signature=envelope.signature.to_bytes()))
        except Exception as e:
            # Unrecoverable signature bytes are a mismatch, not a shape error.
            logger.debug("signature recovery failed: %s: %s", type(e).__name__, e)
            return False

        ok = recovered == signer
        logger.debug("verify %s: recovered=%s expected=%s ok=%s", envelope.primary_type, recovered, signer, ok)
        return ok

    def verify_offchain_attestation(
        self, expected_signer: str, attestation: SignedOffchainAttestation, *, strict: bool = True
    ) -> bool:
        """Signature check plus UID check: the carried UID must be the recomputed one."""

        if not self.verify(expected_signer, attestation.envelope, MessageKind.ATTESTATION, strict=strict):
            return False

        m = attestation.message
        uid = offchain_attestation_uid(
            self.version,
            m["schema"],
            m["recipient"],
            m["time"],
            m["expirationTime"],
            m["revocable"],
            m["refUID"],
            m["data"],
            m.get("salt"),
        )
        if uid != attestation.uid.lower():
            logger.debug("offchain uid mismatch: carried=%s recomputed=%s", attestation.uid, uid)
            return False
        return True

    def verify_delegated_attestation(
        self, expected_signer: str, envelope: SignedEnvelope, *, proxy: bool = False, strict: bool = True
    ) -> bool:
        kind = MessageKind.DELEGATED_PROXY_ATTESTATION if proxy else MessageKind.DELEGATED_ATTESTATION
        return self.verify(expected_signer, envelope, kind, strict=strict)

    def verify_delegated_revocation(
        self, expected_signer: str, envelope: SignedEnvelope, *, proxy: bool = False, strict: bool = True
    ) -> bool:
        kind = MessageKind.DELEGATED_PROXY_REVOCATION if proxy else MessageKind.DELEGATED_REVOCATION
        return self.verify(expected_signer, envelope, kind, strict=strict)

"""easproof.attestation.signer

Signing.

One await per signature: the capability either returns a complete signature
or fails, and the failure propagates as a SigningCapabilityError. No retries,
no partial envelopes.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os

from collections.abc import Callable, Mapping
from typing import Any

from easproof.attestation.envelope import Signature, SignedEnvelope, SignedOffchainAttestation
from easproof.attestation.messages import (
    DelegatedAttestationRequest,
    DelegatedRevocationRequest,
    OffchainAttestationParams,
)
from easproof.attestation.uid import offchain_attestation_uid
from easproof.core.exceptions import SigningCapabilityError, SignerUnavailableError, StructuralError
from easproof.eip712.domain import Domain, DomainResolver
from easproof.eip712.hasher import signable_message
from easproof.eip712.types import (
    DEFAULT_REGISTRY,
    MessageKind,
    ProtocolVersion,
    TypeMap,
    TypeSchema,
    TypeSchemaRegistry,
    normalize_types,
)
from easproof.security.signers import SigningCapability

logger = logging.getLogger(__name__)

SALT_SIZE = 32


async def sign(
    domain: Domain,
    primary_type: str,
    types: TypeMap,
    message: Mapping[str, Any],
    capability: SigningCapability,
) -> SignedEnvelope:
    """Hash, delegate to ``capability``, wrap the result in an envelope."""

    # Hash first: structural errors surface before the signer is bothered.
    signable = signable_message(domain, primary_type, types, message)

    try:
        raw = await capability.sign(signable)
    except SigningCapabilityError:
        raise
    except asyncio.CancelledError as e:
        # Any cancellation, the calling task's own included, is reported as an unavailable signer.
        raise SignerUnavailableError("signing capability was cancelled") from e
    except Exception as e:
        raise SignerUnavailableError(f"signing capability failed: {type(e).__name__}: {e}") from e

    try:
        signature = Signature.from_bytes(bytes(raw))
    except (StructuralError, TypeError, ValueError) as e:
        raise SignerUnavailableError("signing capability returned a malformed signature") from e

    logger.debug("signed %s for %s on chain %d", primary_type, domain.verifying_contract, domain.chain_id)
    return SignedEnvelope(
        domain=domain,
        primary_type=primary_type,
        types=normalize_types(types),
        message=dict(message),
        signature=signature,
    )


class AttestationSigner:
    """Builds versioned EAS messages and signs them."""

    def __init__(self, resolver: DomainResolver, *, registry: TypeSchemaRegistry = DEFAULT_REGISTRY) -> None:
        self._resolver = resolver
        self._registry = registry

    async def _sign_kind(
        self,
        kind: MessageKind,
        version: ProtocolVersion,
        message_for: Callable[[TypeSchema], dict[str, Any]],
        capability: SigningCapability,
    ) -> SignedEnvelope:
        schema = self._registry.schema_for(version, kind)
        domain = self._resolver.resolve(kind, version)
        message = message_for(schema)
        return await sign(domain, schema.primary_type, {schema.primary_type: schema.fields}, message, capability)

    async def sign_offchain_attestation(
        self,
        params: OffchainAttestationParams,
        capability: SigningCapability,
        *,
        version: ProtocolVersion | int = ProtocolVersion.VERSION2,
    ) -> SignedOffchainAttestation:
        version = ProtocolVersion(version)
        if version >= ProtocolVersion.VERSION2 and params.salt is None:
            params = dataclasses.replace(params, salt=os.urandom(SALT_SIZE))

        envelope = await self._sign_kind(
            MessageKind.ATTESTATION,
            version,
            lambda schema: params.to_message(schema, version),
            capability,
        )
        m = envelope.message
        uid = offchain_attestation_uid(
            version,
            m["schema"],
            m["recipient"],
            m["time"],
            m["expirationTime"],
            m["revocable"],
            m["refUID"],
            m["data"],
            m.get("salt"),
        )
        logger.debug("offchain attestation %s signed (version=%s)", uid, version.name)
        return SignedOffchainAttestation(envelope=envelope, uid=uid, version=version)

    async def sign_delegated_attestation(
        self,
        request: DelegatedAttestationRequest,
        capability: SigningCapability,
        *,
        version: ProtocolVersion | int = ProtocolVersion.VERSION2,
        proxy: bool = False,
    ) -> SignedEnvelope:
        kind = MessageKind.DELEGATED_PROXY_ATTESTATION if proxy else MessageKind.DELEGATED_ATTESTATION
        return await self._sign_kind(kind, ProtocolVersion(version), request.to_message, capability)

    async def sign_delegated_revocation(
        self,
        request: DelegatedRevocationRequest,
        capability: SigningCapability,
        *,
        version: ProtocolVersion | int = ProtocolVersion.VERSION2,
        proxy: bool = False,
    ) -> SignedEnvelope:
        kind = MessageKind.DELEGATED_PROXY_REVOCATION if proxy else MessageKind.DELEGATED_REVOCATION
        return await self._sign_kind(kind, ProtocolVersion(version), request.to_message, capability)

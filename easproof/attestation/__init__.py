"""easproof.attestation

EAS messages: UIDs, request builders, envelopes, signing, verification.
"""

from .encoding import NO_EXPIRATION, ZERO_ADDRESS, ZERO_BYTES, ZERO_BYTES32
from .envelope import Signature, SignedEnvelope, SignedOffchainAttestation
from .messages import DelegatedAttestationRequest, DelegatedRevocationRequest, OffchainAttestationParams
from .signer import AttestationSigner, sign
from .uid import attestation_uid, offchain_attestation_uid, schema_uid
from .verifier import Verifier

__all__ = [
    "NO_EXPIRATION",
    "ZERO_ADDRESS",
    "ZERO_BYTES",
    "ZERO_BYTES32",
    "AttestationSigner",
    "DelegatedAttestationRequest",
    "DelegatedRevocationRequest",
    "OffchainAttestationParams",
    "Signature",
    "SignedEnvelope",
    "SignedOffchainAttestation",
    "Verifier",
    "attestation_uid",
    "offchain_attestation_uid",
    "schema_uid",
    "sign",
]

"""easproof.core.exceptions

Errors are part of the interface.

Structural errors mean a caller bug or a tampered envelope. A signature that
simply does not match is not an error; verification returns ``False``.
"""

from __future__ import annotations


class EasproofError(Exception):
    """Base exception for easproof."""


class ConfigError(EasproofError):
    """Configuration is missing, invalid, or inconsistent."""


class StructuralError(EasproofError):
    """Typed data does not have the shape it claims to have."""


class InvalidAddress(StructuralError):
    """Expected signer is the zero address or not an address at all."""


class InvalidDomain(StructuralError):
    """Envelope domain differs from the session domain."""

    def __init__(self, field: str, expected: object, actual: object) -> None:
        super().__init__(f"domain.{field} mismatch: expected {expected!r}, got {actual!r}")
        self.field = field
        self.expected = expected
        self.actual = actual


class InvalidPrimaryType(StructuralError):
    """Envelope primaryType is not the one expected for this message kind."""


class InvalidTypes(StructuralError):
    """Envelope type definitions differ from the registered schema."""


class UnknownType(StructuralError):
    """A struct type is referenced but never defined."""


class UnknownFieldType(StructuralError):
    """A field's declared type has no EIP-712 encoding rule."""


class InvalidFieldValue(StructuralError):
    """A field value is missing or does not fit its declared type."""


class SigningCapabilityError(EasproofError):
    """The external signing capability failed to produce a signature."""


class SignerUnavailableError(SigningCapabilityError):
    """Signer is unreachable, aborted, or cancelled."""


class SignerRejectedError(SigningCapabilityError):
    """Signer refused the request. Nobody retries on your behalf."""


class ChainQueryError(EasproofError):
    """Chain collaborator returned an error or an unreadable result."""

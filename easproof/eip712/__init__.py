"""easproof.eip712

Typed-data plumbing: domains, versioned type schemas, hashing.
"""

from .domain import Domain, DomainResolver, resolve_domain
from .hasher import digest, domain_separator, encode_type, hash_struct, hash_type, signable_message
from .types import (
    DEFAULT_REGISTRY,
    FieldDescriptor,
    MessageKind,
    ProtocolVersion,
    TypeSchema,
    TypeSchemaRegistry,
    schema_for,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "Domain",
    "DomainResolver",
    "FieldDescriptor",
    "MessageKind",
    "ProtocolVersion",
    "TypeSchema",
    "TypeSchemaRegistry",
    "digest",
    "domain_separator",
    "encode_type",
    "hash_struct",
    "hash_type",
    "resolve_domain",
    "schema_for",
    "signable_message",
]

"""easproof.eip712.domain

Domain resolution.

A domain binds a signature to one contract on one chain at one version
string. Two domains are interchangeable only if every field matches; the
verifying contract is checksummed on construction so hex casing never matters.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from eth_utils import is_address, to_checksum_address

from easproof.core.exceptions import InvalidDomain
from easproof.eip712.types import (
    DEFAULT_REGISTRY,
    FieldDescriptor,
    MessageKind,
    ProtocolVersion,
    TypeSchemaRegistry,
)

DOMAIN_FIELDS: tuple[FieldDescriptor, ...] = (
    FieldDescriptor("name", "string"),
    FieldDescriptor("version", "string"),
    FieldDescriptor("chainId", "uint256"),
    FieldDescriptor("verifyingContract", "address"),
)


@dataclass(frozen=True, slots=True)
class Domain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def __post_init__(self) -> None:
        if not is_address(self.verifying_contract):
            raise InvalidDomain("verifyingContract", "address", self.verifying_contract)
        object.__setattr__(self, "name", str(self.name))
        object.__setattr__(self, "version", str(self.version))
        object.__setattr__(self, "chain_id", int(self.chain_id))
        object.__setattr__(self, "verifying_contract", to_checksum_address(self.verifying_contract))

    def as_typed_data(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }

    @classmethod
    def from_typed_data(cls, d: Mapping[str, Any]) -> Domain:
        missing = [f.name for f in DOMAIN_FIELDS if f.name not in d]
        if missing:
            raise InvalidDomain(missing[0], "present", None)
        try:
            chain_id = int(d["chainId"])
        except (TypeError, ValueError) as e:
            raise InvalidDomain("chainId", "integer", d["chainId"]) from e
        return cls(
            name=d["name"],
            version=d["version"],
            chain_id=chain_id,
            verifying_contract=str(d["verifyingContract"]),
        )


def resolve_domain(
    version: ProtocolVersion | int,
    *,
    name: str,
    contract_version: str,
    chain_id: int,
    verifying_contract: str,
) -> Domain:
    """Build the canonical domain for one protocol version.

    The protocol version picks the type schemas, not the domain fields; it is
    validated here so an unknown version fails before anything is hashed.
    """

    ProtocolVersion(version)
    return Domain(name=name, version=contract_version, chain_id=chain_id, verifying_contract=verifying_contract)


class DomainResolver:
    """Session contract metadata -> Domain per message kind.

    Offchain and delegated messages are verified by the EAS contract; proxy
    messages by the EIP712Proxy, which has its own name and version string.
    """

    def __init__(
        self,
        *,
        chain_id: int,
        eas_contract: str,
        eas_version: str,
        proxy_contract: str | None = None,
        proxy_name: str = "EIP712Proxy",
        proxy_version: str | None = None,
        registry: TypeSchemaRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.chain_id = int(chain_id)
        self.eas_contract = to_checksum_address(eas_contract)
        self.eas_version = str(eas_version)
        self.proxy_contract = to_checksum_address(proxy_contract) if proxy_contract else None
        self.proxy_name = str(proxy_name)
        self.proxy_version = str(proxy_version or eas_version)
        self._registry = registry

    def resolve(self, kind: MessageKind | str, version: ProtocolVersion | int) -> Domain:
        kind = MessageKind(kind)
        schema = self._registry.schema_for(version, kind)

        if kind in (MessageKind.DELEGATED_PROXY_ATTESTATION, MessageKind.DELEGATED_PROXY_REVOCATION):
            if self.proxy_contract is None:
                raise InvalidDomain("verifyingContract", "proxy contract", None)
            return resolve_domain(
                version,
                name=self.proxy_name,
                contract_version=self.proxy_version,
                chain_id=self.chain_id,
                verifying_contract=self.proxy_contract,
            )

        return resolve_domain(
            version,
            name=schema.domain_name,
            contract_version=self.eas_version,
            chain_id=self.chain_id,
            verifying_contract=self.eas_contract,
        )

"""easproof.integrations.chain

Chain collaborator boundary.

Design goals:
- Lightweight: raw JSON-RPC over httpx, no web3 dependency.
- Read-only. Nonces and timestamps come in from here; transactions never go out.

Anything the signing engine needs from a chain (the replay nonce, the current
block time, a registered schema) is read here and passed in explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils.crypto import keccak

from easproof.attestation.encoding import norm_addr, norm_bytes, norm_bytes32, to_hex
from easproof.core.exceptions import ChainQueryError, InvalidFieldValue

GET_NONCE_SELECTOR = keccak(text="getNonce(address)")[:4]
GET_SCHEMA_SELECTOR = keccak(text="getSchema(bytes32)")[:4]

# Attested(address indexed recipient, address indexed attester, bytes32 uid, bytes32 indexed schemaUID)
ATTESTED_TOPIC = to_hex(keccak(text="Attested(address,address,bytes32,bytes32)"))


@dataclass(frozen=True, slots=True)
class SchemaRecord:
    uid: str
    resolver: str
    revocable: bool
    schema: str


class ChainQuery(Protocol):
    def get_nonce(self, address: str) -> int: ...

    def get_block_timestamp(self, block: str | int = "latest") -> int: ...

    def get_schema(self, uid: str) -> SchemaRecord: ...


class JsonRpcChain:
    """ChainQuery over raw JSON-RPC."""

    def __init__(
        self,
        *,
        rpc_url: str,
        eas_address: str,
        schema_registry_address: str,
        timeout_s: float = 30.0,
    ) -> None:
        self._rpc_url = str(rpc_url)
        self._eas = norm_addr(eas_address, what="eas_address")
        self._schema_registry = norm_addr(schema_registry_address, what="schema_registry_address")
        self._http = httpx.Client(timeout=timeout_s)
        self._next_id = 1

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> JsonRpcChain:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def rpc_call(self, method: str, params: list[object]) -> Any:
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": str(method), "params": list(params)}
        self._next_id += 1
        try:
            r = self._http.post(self._rpc_url, json=payload)
            r.raise_for_status()
            out = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ChainQueryError(f"{method} failed: {e}") from e
        if "error" in out:
            raise ChainQueryError(f"{method} failed: {out['error']}")
        return out.get("result")

    def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        result = self.rpc_call("eth_call", [{"to": to, "data": to_hex(data)}, block])
        try:
            return norm_bytes(str(result), what="eth_call result")
        except InvalidFieldValue as e:
            raise ChainQueryError(f"eth_call returned non-hex result: {result!r}") from e

    def get_nonce(self, address: str) -> int:
        """Current delegated-signature nonce the EAS contract expects from ``address``."""

        data = GET_NONCE_SELECTOR + abi_encode(["address"], [norm_addr(address)])
        raw = self.eth_call(self._eas, data)
        try:
            (nonce,) = abi_decode(["uint256"], raw)
        except DecodingError as e:
            raise ChainQueryError("getNonce returned undecodable data") from e
        return int(nonce)

    def get_block_timestamp(self, block: str | int = "latest") -> int:
        tag = hex(block) if isinstance(block, int) else str(block)
        result = self.rpc_call("eth_getBlockByNumber", [tag, False])
        if not isinstance(result, Mapping) or "timestamp" not in result:
            raise ChainQueryError(f"block {tag} not found")
        return int(str(result["timestamp"]), 16)

    def get_schema(self, uid: str) -> SchemaRecord:
        data = GET_SCHEMA_SELECTOR + norm_bytes32(uid, what="uid")
        raw = self.eth_call(self._schema_registry, data)
        try:
            ((uid_b, resolver, revocable, schema),) = abi_decode(["(bytes32,address,bool,string)"], raw)
        except DecodingError as e:
            raise ChainQueryError("getSchema returned undecodable data") from e
        return SchemaRecord(uid=to_hex(uid_b), resolver=norm_addr(resolver), revocable=bool(revocable), schema=schema)


def uid_from_attest_receipt(receipt: Mapping[str, Any]) -> str:
    """UID of the first ``Attested`` event in a transaction receipt."""

    for log in receipt.get("logs") or []:
        topics = [str(t).lower() for t in log.get("topics") or []]
        if topics and topics[0] == ATTESTED_TOPIC:
            try:
                data = norm_bytes(str(log.get("data") or "0x"), what="log data")
            except InvalidFieldValue as e:
                raise ChainQueryError("Attested event data is not hex") from e
            if len(data) != 32:
                raise ChainQueryError(f"Attested event data must be 32 bytes, got {len(data)}")
            return to_hex(data)
    raise ChainQueryError("receipt has no Attested event")

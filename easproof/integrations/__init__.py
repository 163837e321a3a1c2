"""easproof.integrations

External collaborators, specified at their boundary only.
"""

from .chain import ChainQuery, JsonRpcChain, SchemaRecord, uid_from_attest_receipt

__all__ = [
    "ChainQuery",
    "JsonRpcChain",
    "SchemaRecord",
    "uid_from_attest_receipt",
]

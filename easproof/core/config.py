"""easproof.core.config

Two config surfaces only:
1) `config/default.yaml` (+ optional `config/user.yaml` overlay)
2) Environment variables (`EASPROOF_` prefix, `__` for nesting)

Everything else is derived.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from eth_utils import is_address
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from easproof.core.exceptions import ConfigError

if TYPE_CHECKING:
    from easproof.eip712.domain import DomainResolver


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class EIP712Config(BaseModel):
    """Session domain metadata. Must match the deployed contracts exactly."""

    chain_id: int = 1
    eas_contract: str = "0xA1207F3BBa224E2c9c3c6D5aF63D0eb1582Ce587"
    eas_version: str = "1.0.0"
    proxy_contract: str = ""
    proxy_name: str = "EIP712Proxy"
    proxy_version: str = "1.0.0"
    protocol_version: int = 2

    @field_validator("eas_contract")
    @classmethod
    def eas_contract_must_be_address(cls, v: str) -> str:
        if not is_address(v):
            raise ValueError(f"eas_contract is not an address: {v}")
        return v

    @field_validator("proxy_contract")
    @classmethod
    def proxy_contract_empty_or_address(cls, v: str) -> str:
        if v and not is_address(v):
            raise ValueError(f"proxy_contract is not an address: {v}")
        return v

    @field_validator("protocol_version")
    @classmethod
    def protocol_version_known(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError(f"protocol_version must be 0, 1 or 2, got {v}")
        return v


class ChainConfig(BaseModel):
    rpc_url: str = "http://127.0.0.1:8545"
    timeout_s: float = 30.0
    schema_registry: str = "0xA7b39296258348C78294F95B872b282326A97BDF"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    eip712: EIP712Config = Field(default_factory=EIP712Config)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "EASPROOF_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}") from e

        # user.yaml overlays default.yaml; default.yaml stands alone.
        default_path = path.parent / "default.yaml"
        if path.name != "default.yaml" and default_path.exists():
            base = yaml.safe_load(default_path.read_text()) or {}
            raw = _deep_merge(base, raw)

        return cls(**raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> Config:
        root = repo_root or Path.cwd()
        user = root / "config" / "user.yaml"
        if user.exists():
            return cls.from_yaml(user)
        return cls.from_yaml(root / "config" / "default.yaml")

    def domain_resolver(self) -> DomainResolver:
        # Lazy import: eip712 depends on core, not the other way round.
        from easproof.eip712.domain import DomainResolver

        e = self.eip712
        return DomainResolver(
            chain_id=e.chain_id,
            eas_contract=e.eas_contract,
            eas_version=e.eas_version,
            proxy_contract=e.proxy_contract or None,
            proxy_name=e.proxy_name,
            proxy_version=e.proxy_version,
        )

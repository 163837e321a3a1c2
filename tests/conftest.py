from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# uv/pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from easproof.core.config import Config  # noqa: E402
from easproof.eip712.domain import DomainResolver  # noqa: E402
from easproof.security.signers import LocalAccountSigner  # noqa: E402

# Deterministic test keys (DO NOT USE IN PRODUCTION)
ANVIL_KEY_1 = "0x59c6995e998f97a5a0044966f0945382d1b83f5f8b2e70e9a1baddb5f9d0c2d7"
ANVIL_KEY_2 = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"

EAS_CONTRACT = "0xA1207F3BBa224E2c9c3c6D5aF63D0eb1582Ce587"
PROXY_CONTRACT = "0x1111111111111111111111111111111111111111"


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config loaded from a temp copy of config/default.yaml."""

    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(REPO_ROOT / "config" / "default.yaml", cfg_dst_dir / "default.yaml")
    return Config.from_yaml(cfg_dst_dir / "default.yaml")


@pytest.fixture()
def resolver() -> DomainResolver:
    return DomainResolver(
        chain_id=1,
        eas_contract=EAS_CONTRACT,
        eas_version="1.0.0",
        proxy_contract=PROXY_CONTRACT,
        proxy_version="1.0.0",
    )


@pytest.fixture()
def signer() -> LocalAccountSigner:
    return LocalAccountSigner.from_key(ANVIL_KEY_1)


@pytest.fixture()
def other_signer() -> LocalAccountSigner:
    return LocalAccountSigner.from_key(ANVIL_KEY_2)


@pytest.fixture(autouse=True)
def _reset_easproof_logger() -> Iterator[None]:
    """CLI tests call configure_logging(); undo it so caplog keeps working."""

    yield
    logger = logging.getLogger("easproof")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True

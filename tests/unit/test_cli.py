from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

import httpx
import pytest
from eth_abi import encode as abi_encode

from easproof.cli import PRIVATE_KEY_ENV, build_parser, main
from easproof.security.signers import LocalAccountSigner

PK = "0x59c6995e998f97a5a0044966f0945382d1b83f5f8b2e70e9a1baddb5f9d0c2d7"  # anvil default
SCHEMA = "0x" + "11" * 32


def _scaffold_repo(tmp_path: Path) -> Path:
    """Create a minimal repo root layout expected by the CLI."""

    repo_root = tmp_path
    src_root = Path(__file__).resolve().parents[2]
    (repo_root / "config").mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_root / "config" / "default.yaml", repo_root / "config" / "default.yaml")
    return repo_root


def test_cli_help_includes_subcommands(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main([])
    assert rc == 2
    out = capsys.readouterr().out
    assert "schema-uid" in out
    assert "sign-offchain" in out
    assert "verify" in out
    assert "nonce" in out


def test_cli_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    rc = main(["--version"])
    assert rc == 0
    assert capsys.readouterr().out.strip().startswith("easproof v")


def test_cli_unknown_command_errors() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["nope"])


def test_schema_uid_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["schema-uid", "bool like"]) == 0
    revocable = capsys.readouterr().out.strip()
    assert main(["schema-uid", "bool like", "--irrevocable"]) == 0
    irrevocable = capsys.readouterr().out.strip()
    assert revocable.startswith("0x") and len(revocable) == 66
    assert revocable != irrevocable


def test_sign_offchain_requires_key(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    monkeypatch.delenv(PRIVATE_KEY_ENV, raising=False)
    assert main(["sign-offchain", "--schema", SCHEMA]) == 2
    assert PRIVATE_KEY_ENV in capsys.readouterr().err


def test_sign_then_verify_round_trip(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    monkeypatch.setenv(PRIVATE_KEY_ENV, PK)
    attester = LocalAccountSigner.from_key(PK).address
    out = tmp_path / "att.json"

    rc = main(["sign-offchain", "--schema", SCHEMA, "--time", "1700000000", "--data", "0xbeef", "--out", str(out)])
    assert rc == 0
    uid = capsys.readouterr().out.strip()
    att = json.loads(out.read_text())
    assert att["uid"] == uid
    assert att["message"]["data"] == "0xbeef"

    assert main(["verify", str(out), "--attester", attester]) == 0
    assert "valid" in capsys.readouterr().out

    # Tampered payload: signature no longer matches.
    att["message"]["time"] = 1700000001
    out.write_text(json.dumps(att))
    assert main(["verify", str(out), "--attester", attester]) == 1

    # Wrong chain: structural rejection.
    att["domain"]["chainId"] = 5
    out.write_text(json.dumps(att))
    assert main(["verify", str(out), "--attester", attester]) == 2
    assert "InvalidDomain" in capsys.readouterr().err


def test_sign_offchain_legacy_prints_json(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    monkeypatch.setenv(PRIVATE_KEY_ENV, PK)
    assert main(["sign-offchain", "--schema", SCHEMA, "--protocol-version", "0"]) == 0
    att = json.loads(capsys.readouterr().out)
    assert att["primaryType"] == "Attestation"
    assert att["version"] == 0


def test_verify_missing_file_exits_2(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    attester = LocalAccountSigner.from_key(PK).address
    assert main(["verify", str(tmp_path / "missing.json"), "--attester", attester]) == 2
    assert capsys.readouterr().err.startswith("error: FileNotFoundError")


def test_verify_bad_json_exits_2(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    attester = LocalAccountSigner.from_key(PK).address
    assert main(["verify", str(bad), "--attester", attester]) == 2
    assert "error:" in capsys.readouterr().err


def test_sign_offchain_bad_schema_exits_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    monkeypatch.setenv(PRIVATE_KEY_ENV, PK)
    assert main(["sign-offchain", "--schema", "0x11"]) == 2
    assert "InvalidFieldValue" in capsys.readouterr().err

    assert main(["sign-offchain", "--schema", SCHEMA, "--salt", "nothex"]) == 2
    assert "InvalidFieldValue" in capsys.readouterr().err


def test_sign_offchain_bad_key_exits_2(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))
    monkeypatch.setenv(PRIVATE_KEY_ENV, "0xnothex")
    assert main(["sign-offchain", "--schema", SCHEMA]) == 2
    assert "error:" in capsys.readouterr().err


def test_schema_uid_bad_resolver_exits_2(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["schema-uid", "bool like", "--resolver", "0x1234"]) == 2
    assert "InvalidFieldValue" in capsys.readouterr().err


class FakeResp:
    def __init__(self, body: dict[str, Any]) -> None:
        self.body = body

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict[str, Any]:
        return self.body


def test_nonce_command(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))

    def fake_post(self: httpx.Client, url: str, *, json: dict[str, Any]) -> FakeResp:
        assert url == "http://127.0.0.1:8545"
        assert json["method"] == "eth_call"
        return FakeResp({"jsonrpc": "2.0", "id": json["id"], "result": "0x" + abi_encode(["uint256"], [7]).hex()})

    monkeypatch.setattr(httpx.Client, "post", fake_post)
    attester = LocalAccountSigner.from_key(PK).address
    assert main(["nonce", attester]) == 0
    assert capsys.readouterr().out.strip() == "7"


def test_nonce_rpc_error_exits_1(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))

    def fake_post(self: httpx.Client, url: str, *, json: dict[str, Any]) -> FakeResp:
        return FakeResp({"jsonrpc": "2.0", "id": json["id"], "error": {"code": -32000, "message": "execution reverted"}})

    monkeypatch.setattr(httpx.Client, "post", fake_post)
    assert main(["nonce", LocalAccountSigner.from_key(PK).address]) == 1
    assert "execution reverted" in capsys.readouterr().err


def test_nonce_bad_address_exits_2(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.chdir(_scaffold_repo(tmp_path))

    def fake_post(self: httpx.Client, url: str, *, json: dict[str, Any]) -> FakeResp:
        raise AssertionError("no RPC for a malformed address")

    monkeypatch.setattr(httpx.Client, "post", fake_post)
    assert main(["nonce", "0x1234"]) == 2
    assert "not an address" in capsys.readouterr().err

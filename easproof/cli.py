"""easproof.cli

Command line interface entry point for easproof.

Design constraints:
- argparse-based.
- Lazy imports: do not import eth-account at parse time.
- The CLI is the edge: it reads the clock, the environment and files, then
  hands explicit values to the engine.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from easproof.core.config import Config

PRIVATE_KEY_ENV = "EASPROOF_PRIVATE_KEY"


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="easproof",
        description="Sign and verify EAS offchain attestations (EIP-712).",
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit.")

    sub = parser.add_subparsers(dest="command")

    p_schema = sub.add_parser("schema-uid", help="Compute a SchemaRegistry UID")
    p_schema.add_argument("schema", help='Schema text, e.g. "bool like"')
    p_schema.add_argument("--resolver", default=None, help="Resolver address (default: zero address)")
    p_schema.add_argument("--irrevocable", action="store_true", help="Schema does not allow revocation")

    p_sign = sub.add_parser("sign-offchain", help=f"Sign an offchain attestation (key from ${PRIVATE_KEY_ENV})")
    p_sign.add_argument("--schema", required=True, help="Schema UID (bytes32 hex)")
    p_sign.add_argument("--recipient", default=None, help="Recipient address (default: zero address)")
    p_sign.add_argument("--time", type=int, default=None, help="Attestation time (default: now)")
    p_sign.add_argument("--expiration", type=int, default=0, help="Expiration time (0 = never)")
    p_sign.add_argument("--irrevocable", action="store_true")
    p_sign.add_argument("--ref-uid", default=None)
    p_sign.add_argument("--data", default="0x", help="Encoded payload (hex)")
    p_sign.add_argument("--salt", default=None, help="bytes32 salt (default: random, version 2 only)")
    p_sign.add_argument("--protocol-version", type=int, choices=[0, 1, 2], default=None)
    p_sign.add_argument("--out", default=None, help="Write JSON here instead of stdout")

    p_verify = sub.add_parser("verify", help="Verify a signed offchain attestation or delegated request")
    p_verify.add_argument("file", help="JSON file with the signed envelope")
    p_verify.add_argument("--attester", required=True, help="Expected signer address")
    p_verify.add_argument(
        "--kind",
        default="attestation",
        choices=[
            "attestation",
            "delegated-attestation",
            "delegated-revocation",
            "delegated-proxy-attestation",
            "delegated-proxy-revocation",
        ],
    )
    p_verify.add_argument("--protocol-version", type=int, choices=[0, 1, 2], default=None)

    p_nonce = sub.add_parser("nonce", help="Read the delegated-signature nonce for an address")
    p_nonce.add_argument("address")

    return parser


def _print_version() -> None:
    from easproof import __version__

    print(f"easproof v{__version__}")


def _load_config(ctx: CliContext) -> Config:
    from easproof.core.config import Config
    from easproof.core.logging import configure_logging

    root = ctx.repo_root
    has_files = (root / "config" / "default.yaml").exists() or (root / "config" / "user.yaml").exists()
    config = Config.from_repo_defaults(root) if has_files else Config()
    configure_logging(config.logging)
    return config


def _fail(e: BaseException) -> int:
    print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
    return 2


def _cmd_schema_uid(ctx: CliContext, args: argparse.Namespace) -> int:
    from easproof.attestation.encoding import ZERO_ADDRESS
    from easproof.attestation.uid import schema_uid
    from easproof.core.exceptions import EasproofError

    try:
        print(schema_uid(args.schema, args.resolver or ZERO_ADDRESS, not args.irrevocable))
    except EasproofError as e:
        return _fail(e)
    return 0


def _cmd_sign_offchain(ctx: CliContext, args: argparse.Namespace) -> int:
    import asyncio
    import time

    from easproof.attestation.encoding import ZERO_ADDRESS, ZERO_BYTES32
    from easproof.attestation.messages import OffchainAttestationParams
    from easproof.attestation.signer import AttestationSigner
    from easproof.core.exceptions import EasproofError
    from easproof.security.signers import LocalAccountSigner

    private_key = os.getenv(PRIVATE_KEY_ENV)
    if not private_key:
        print(f"error: {PRIVATE_KEY_ENV} is not set", file=sys.stderr)
        return 2

    try:
        config = _load_config(ctx)
        version = config.eip712.protocol_version if args.protocol_version is None else args.protocol_version
        params = OffchainAttestationParams(
            schema=args.schema,
            recipient=args.recipient or ZERO_ADDRESS,
            time=int(time.time()) if args.time is None else args.time,
            expiration_time=args.expiration,
            revocable=not args.irrevocable,
            ref_uid=args.ref_uid or ZERO_BYTES32,
            data=args.data,
            salt=args.salt,
        )
        capability = LocalAccountSigner.from_key(private_key)
        signer = AttestationSigner(config.domain_resolver())
        attestation = asyncio.run(signer.sign_offchain_attestation(params, capability, version=version))

        out = json.dumps(attestation.to_dict(), indent=2, sort_keys=True)
        if args.out:
            Path(args.out).write_text(out + "\n", encoding="utf-8")
    except (OSError, ValueError, EasproofError) as e:
        return _fail(e)

    print(attestation.uid if args.out else out)
    return 0


def _cmd_verify(ctx: CliContext, args: argparse.Namespace) -> int:
    from easproof.attestation.envelope import SignedEnvelope, SignedOffchainAttestation
    from easproof.attestation.verifier import Verifier
    from easproof.core.exceptions import EasproofError, StructuralError

    try:
        config = _load_config(ctx)
        version = config.eip712.protocol_version if args.protocol_version is None else args.protocol_version
        verifier = Verifier(config.domain_resolver(), version=version)
        raw = json.loads(Path(args.file).read_text(encoding="utf-8"))
        if args.kind == "attestation":
            ok = verifier.verify_offchain_attestation(args.attester, SignedOffchainAttestation.from_dict(raw))
        else:
            ok = verifier.verify(args.attester, SignedEnvelope.from_dict(raw), args.kind)
    except StructuralError as e:
        print(f"invalid: {type(e).__name__}: {e}", file=sys.stderr)
        return 2
    except (OSError, ValueError, EasproofError) as e:
        return _fail(e)

    print("valid" if ok else "signature mismatch")
    return 0 if ok else 1


def _cmd_nonce(ctx: CliContext, args: argparse.Namespace) -> int:
    from easproof.core.exceptions import ChainQueryError, EasproofError
    from easproof.integrations.chain import JsonRpcChain

    try:
        config = _load_config(ctx)
        with JsonRpcChain(
            rpc_url=config.chain.rpc_url,
            eas_address=config.eip712.eas_contract,
            schema_registry_address=config.chain.schema_registry,
            timeout_s=config.chain.timeout_s,
        ) as chain:
            nonce = chain.get_nonce(args.address)
    except ChainQueryError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError, EasproofError) as e:
        return _fail(e)

    print(nonce)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "schema-uid": _cmd_schema_uid,
        "sign-offchain": _cmd_sign_offchain,
        "verify": _cmd_verify,
        "nonce": _cmd_nonce,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
SigilMint CLI - Artifact Minting Runner

Command-line interface for minting position and resolution sigils and for
inspecting exported containers.

Usage:
    sigilmint mint-position --position position.json --vault vault.yaml --out out/
    sigilmint mint-resolution --payload resolution.json --out out/
    sigilmint inspect --svg out/<stable_id>.svg --key sigilmint.pub
    sigilmint keygen --out keys/

Exit Codes:
    0   OK              - Command succeeded
    10  INPUT_INVALID   - Invalid input (unreadable file, bad record, schema)
    12  VERIFY_FAIL     - Container failed inspection or signature check
    13  MINT_FAILED     - Mint pipeline failed after input validation
    20  INTERNAL_ERROR  - Unexpected internal error

Output (in --out DIR):
    <stable_id>.svg     - The container
    <stable_id>.json    - Manifest (kind, hashes, payload, seal)
    <stable_id>.sig     - Optional Ed25519 signature over the content hash (with --sign)
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from . import __version__
from .exceptions import (
    InputInvalidError,
    SchemaInvalidError,
    SigilMintError,
)
from .mint import (
    REQUIRED_CHECKS,
    MintedArtifact,
    checks_pass,
    inspect_artifact,
    mint_position_sigil,
    mint_resolution_sigil,
)
from .signing import (
    generate_ed25519_keypair,
    read_hex_file,
    sign_content_hash,
    verify_content_hash,
    write_hex_file,
)


# ============================================================================
# EXIT CODES
# ============================================================================

class ExitCode:
    """Deterministic exit codes for pipeline integration."""
    OK = 0
    INPUT_INVALID = 10    # Invalid input files or records
    VERIFY_FAIL = 12      # Inspection or signature check failed
    MINT_FAILED = 13      # Pipeline failed past input validation
    INTERNAL_ERROR = 20   # Unexpected error


def error_to_exit_code(error: SigilMintError) -> int:
    """Map a pipeline error to an exit code."""
    if isinstance(error, (InputInvalidError, SchemaInvalidError)):
        return ExitCode.INPUT_INVALID
    return ExitCode.MINT_FAILED


# ============================================================================
# OUTPUT FORMATTING
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BLUE = ''
        cls.BOLD = ''
        cls.END = ''


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")


def print_success(text: str):
    print(f"{Colors.GREEN}[OK] {text}{Colors.END}")


def print_error(text: str):
    print(f"{Colors.RED}[ERROR] {text}{Colors.END}", file=sys.stderr)


def print_warning(text: str):
    print(f"{Colors.YELLOW}[WARN] {text}{Colors.END}")


def print_kv(key: str, value: Any, indent: int = 0):
    spaces = "  " * indent
    print(f"{spaces}{Colors.BOLD}{key}:{Colors.END} {value}")


def json_dumps(obj: Any, indent: int = 2) -> str:
    """Serialize a manifest for humans (not the canonical form)."""
    return json.dumps(obj, indent=indent, sort_keys=True, ensure_ascii=False)


# ============================================================================
# INPUT / OUTPUT
# ============================================================================

def load_record(path: Path) -> Any:
    """
    Load a JSON or YAML record.

    Files ending in .yaml/.yml go through yaml.safe_load, everything else
    through json.

    Raises:
        InputInvalidError: If the file is missing or does not parse
    """
    if not path.exists():
        raise InputInvalidError(f"File not found: {path}", details={"path": str(path)})
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise InputInvalidError(
            f"Could not parse {path.name}: {e}",
            details={"path": str(path), "internal_error": type(e).__name__},
        ) from e


def write_outputs(artifact: MintedArtifact, out_dir: Path, sign_key: Optional[Path] = None) -> Dict[str, Path]:
    """Write container, manifest and optional signature; returns paths by role."""
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = artifact.stable_id

    svg_path = out_dir / f"{stem}.svg"
    svg_path.write_bytes(artifact.svg_bytes)

    manifest_path = out_dir / f"{stem}.json"
    manifest_path.write_text(json_dumps(artifact.to_manifest()) + "\n", encoding="utf-8")

    paths = {"svg": svg_path, "manifest": manifest_path}
    if sign_key is not None:
        signature_hex = sign_content_hash(read_hex_file(sign_key), artifact.content_hash)
        sig_path = out_dir / f"{stem}.sig"
        sig_path.write_text(signature_hex + "\n", encoding="utf-8")
        paths["signature"] = sig_path
    return paths


def _report_artifact(artifact: MintedArtifact, paths: Dict[str, Path]):
    print_kv("Kind", artifact.kind)
    print_kv("Stable ID", artifact.stable_id)
    print_kv("Content hash", artifact.content_hash)
    print_kv("Canonical hash", artifact.seal.canonical_hash_hex)
    print_kv("Assurance", artifact.seal.tier)
    for role, path in paths.items():
        print_kv(role.capitalize(), path, indent=1)
    print_success("Minted")


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_mint_position(args) -> int:
    """Mint a position sigil from position and vault records."""
    print_header("SigilMint - Mint Position")
    try:
        position = load_record(Path(args.position))
        vault = load_record(Path(args.vault))
        artifact = mint_position_sigil(position, vault)
        paths = write_outputs(artifact, Path(args.out), Path(args.sign) if args.sign else None)
    except SigilMintError as e:
        print_error(str(e))
        return error_to_exit_code(e)

    _report_artifact(artifact, paths)
    return ExitCode.OK


def cmd_mint_resolution(args) -> int:
    """Mint a resolution sigil from an SM-RES-1 payload."""
    print_header("SigilMint - Mint Resolution")
    try:
        payload = load_record(Path(args.payload))
        sources = [load_record(Path(p)) for p in (args.source or [])]
        linked = load_record(Path(args.linked)) if args.linked else None
        artifact = mint_resolution_sigil(payload, sources=sources, linked=linked)
        paths = write_outputs(artifact, Path(args.out), Path(args.sign) if args.sign else None)
    except SigilMintError as e:
        print_error(str(e))
        return error_to_exit_code(e)

    _report_artifact(artifact, paths)
    return ExitCode.OK


def cmd_inspect(args) -> int:
    """Re-read a container and recompute its hashes."""
    print_header("SigilMint - Inspect")
    svg_path = Path(args.svg)
    if not svg_path.exists():
        print_error(f"Container not found: {svg_path}")
        return ExitCode.INPUT_INVALID

    svg_bytes = svg_path.read_bytes()
    try:
        report = inspect_artifact(
            svg_bytes,
            logical_id=args.logical_id,
            kind=args.kind,
            expected_stable_id=args.stable_id,
        )
    except SigilMintError as e:
        print_error(str(e))
        return ExitCode.VERIFY_FAIL

    checks: Dict[str, Optional[bool]] = dict(report.checks)
    if args.key:
        sig_path = Path(args.sig) if args.sig else svg_path.with_suffix(".sig")
        try:
            signature_hex = sig_path.read_text(encoding="utf-8").strip()
            checks["signature"] = (
                report.identity is not None
                and verify_content_hash(read_hex_file(args.key), report.identity.content_hash, signature_hex)
            )
        except (OSError, SigilMintError) as e:
            print_error(f"Signature check failed: {e}")
            checks["signature"] = False

    print_kv("Kind", report.kind)
    if report.identity is not None:
        print_kv("Content hash", report.identity.content_hash)
        print_kv("Stable ID", report.identity.stable_id)
    print_kv("Assurance", report.blocks.seal.get("zkAssurance"))
    print()

    for name, result in checks.items():
        if result is None and name not in REQUIRED_CHECKS:
            print(f"  {Colors.BLUE}[SKIP]{Colors.END} {name}")
        elif result:
            print(f"  {Colors.GREEN}[PASS]{Colors.END} {name}")
        else:
            print(f"  {Colors.RED}[FAIL]{Colors.END} {name}")

    print()
    if checks_pass(checks):
        print(f"{Colors.GREEN}{Colors.BOLD}INSPECTION: PASS{Colors.END}")
        return ExitCode.OK
    print(f"{Colors.RED}{Colors.BOLD}INSPECTION: FAIL{Colors.END}")
    return ExitCode.VERIFY_FAIL


def cmd_keygen(args) -> int:
    """Generate an Ed25519 key pair as hex files."""
    print_header("SigilMint - Key Generation")
    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    private_key, public_key = generate_ed25519_keypair()
    key_path = write_hex_file(out_dir / f"{args.name}.key", private_key)
    pub_path = write_hex_file(out_dir / f"{args.name}.pub", public_key)
    print_kv("Private key", key_path)
    print_kv("Public key", pub_path)
    print_warning("Keep the private key file out of version control")
    return ExitCode.OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    if not sys.stdout.isatty():
        Colors.disable()

    parser = argparse.ArgumentParser(
        prog="sigilmint",
        description="SigilMint CLI - deterministic sigil minting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   OK              Command succeeded
  10  INPUT_INVALID   Invalid input files or records
  12  VERIFY_FAIL     Inspection or signature check failed
  13  MINT_FAILED     Mint pipeline failed
  20  INTERNAL_ERROR  Unexpected error

Examples:
  sigilmint mint-position --position pos.json --vault vault.yaml --out out/ --sign keys/sigilmint.key
  sigilmint mint-resolution --payload res.json --source oracle.json --out out/
  sigilmint inspect --svg out/<stable_id>.svg --key keys/sigilmint.pub
  sigilmint keygen --out keys/
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # mint-position
    pos_parser = subparsers.add_parser("mint-position", help="Mint a position sigil")
    pos_parser.add_argument("--position", "-p", required=True, help="Position record (JSON or YAML)")
    pos_parser.add_argument("--vault", "-v", required=True, help="Vault record (JSON or YAML)")
    pos_parser.add_argument("--out", "-o", default="./out", help="Output directory")
    pos_parser.add_argument("--sign", help="Sign the content hash with a hex private key file")
    pos_parser.set_defaults(func=cmd_mint_position)

    # mint-resolution
    res_parser = subparsers.add_parser("mint-resolution", help="Mint a resolution sigil")
    res_parser.add_argument("--payload", "-p", required=True, help="SM-RES-1 payload (JSON or YAML)")
    res_parser.add_argument("--source", "-s", action="append",
                            help="Extra proof source record (repeatable, priority order)")
    res_parser.add_argument("--linked", help="Linked record compared for seal-match")
    res_parser.add_argument("--out", "-o", default="./out", help="Output directory")
    res_parser.add_argument("--sign", help="Sign the content hash with a hex private key file")
    res_parser.set_defaults(func=cmd_mint_resolution)

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="Inspect an exported container")
    inspect_parser.add_argument("--svg", required=True, help="Container file")
    inspect_parser.add_argument("--logical-id", help="Logical id (defaults to the payload's)")
    inspect_parser.add_argument("--kind", choices=["position", "resolution"],
                                help="Artifact kind (defaults to the payload's)")
    inspect_parser.add_argument("--stable-id", help="Expected stable id")
    inspect_parser.add_argument("--key", "-k", help="Public key for signature verification")
    inspect_parser.add_argument("--sig", help="Signature file (defaults to <svg>.sig)")
    inspect_parser.set_defaults(func=cmd_inspect)

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate an Ed25519 key pair")
    keygen_parser.add_argument("--out", "-o", default=".", help="Output directory")
    keygen_parser.add_argument("--name", default="sigilmint", help="Key file base name")
    keygen_parser.set_defaults(func=cmd_keygen)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        return ExitCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())

"""
Recipient CLI
=============

Opens packages received by mail, entirely offline:

    medsecure-open open record_42.package.json record_42.signature.b64.txt \\
        --sender-pub sender_ed25519_public.pem --recipient-key my_rsa_private.pem \\
        -o record.pdf

    medsecure-open check-key my_rsa_public.pem

Exit codes: 0 success, 1 failure, 2 usage error.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from medsecure import __version__
from medsecure.core.crypto import (
    KeyMaterial,
    PackageOpener,
    SealedPackageError,
    redact_for_boundary,
    validate_public_key_pem,
)
from medsecure.core.logging import configure_root_logger

EXIT_OK = 0
EXIT_FAILURE = 1


# ---------------------------------------------------------------------------
# CLI Commands
# ---------------------------------------------------------------------------

def cmd_open(args: argparse.Namespace) -> int:
    try:
        package_bytes = Path(args.package).read_bytes()
        signature_text = Path(args.signature).read_text(encoding="ascii")
        sender_pub = KeyMaterial.from_path(args.sender_pub)
        recipient_key = KeyMaterial.from_path(args.recipient_key)
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read input: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        plaintext = PackageOpener().open_bytes(
            package_bytes, signature_text, sender_pub, recipient_key
        )
    except SealedPackageError as e:
        if args.verbose:
            print(f"error: {e.category}: {e}", file=sys.stderr)
        else:
            print(f"error: {redact_for_boundary(e).public_message}", file=sys.stderr)
        return EXIT_FAILURE

    if args.output:
        Path(args.output).write_bytes(plaintext)
        print(f"Opened {len(plaintext)} bytes -> {args.output}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(plaintext)
        sys.stdout.flush()
    return EXIT_OK


def cmd_check_key(args: argparse.Namespace) -> int:
    try:
        pem = Path(args.pem).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read key: {e}", file=sys.stderr)
        return EXIT_FAILURE

    check = validate_public_key_pem(pem)
    if check:
        print("OK")
        return EXIT_OK
    print(check.reason)
    return EXIT_FAILURE


# ---------------------------------------------------------------------------
# CLI Definition
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medsecure-open",
        description="Verify and decrypt MedSecure packages",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("open", help="verify and decrypt a received package")
    p.add_argument("package", help="record_<id>.package.json")
    p.add_argument("signature", help="record_<id>.signature.b64.txt")
    p.add_argument("--sender-pub", required=True, help="sender Ed25519 public key (PEM)")
    p.add_argument("--recipient-key", required=True, help="your RSA private key (PEM)")
    p.add_argument("-o", "--output", help="output filename (default: stdout)")
    p.add_argument("--verbose", action="store_true", help="report which check failed")
    p.set_defaults(func=cmd_open)

    p = sub.add_parser("check-key", help="check a public key PEM before publishing it")
    p.add_argument("pem", help="public key filename")
    p.set_defaults(func=cmd_check_key)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "verbose", False):
        configure_root_logger(level="DEBUG", enable_file=False)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

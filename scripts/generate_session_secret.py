#!/usr/bin/env python3
"""Generate a signing key for soundboard session tokens."""

from __future__ import annotations

import argparse
import os
import secrets
import sys
from pathlib import Path

DEFAULT_BYTE_LENGTH = 32
ENV_VAR_NAME = "SESSION_SECRET"


def generate_secret(byte_length: int = DEFAULT_BYTE_LENGTH) -> str:
    if byte_length < 16:
        raise ValueError(f"byte length must be at least 16 (got {byte_length})")
    return secrets.token_urlsafe(byte_length)


def write_secret(path: Path, secret: str) -> bool:
    """Set ``SESSION_SECRET`` in an env file. Returns True when a value was replaced."""

    entry = f"{ENV_VAR_NAME}={secret}"
    existing = path.read_text(encoding="utf-8").splitlines() if path.exists() else []
    replaced = False
    lines: list[str] = []
    for line in existing:
        key = line.split("=", 1)[0].strip()
        if key == ENV_VAR_NAME or key == f"export {ENV_VAR_NAME}":
            lines.append(entry)
            replaced = True
        else:
            lines.append(line)
    if not replaced:
        lines.append(entry)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    if os.name == "posix":
        path.chmod(0o600)
    return replaced


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--bytes",
        type=int,
        default=DEFAULT_BYTE_LENGTH,
        help="Random bytes of entropy in the generated key.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        metavar="PATH",
        help="Write the key into this env file instead of only printing it.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not echo the key to stdout.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        secret = generate_secret(args.bytes)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.env_file:
        action = "Replaced" if write_secret(args.env_file, secret) else "Added"
        print(f"{action} {ENV_VAR_NAME} in {args.env_file}.", file=sys.stderr)

    if not args.quiet:
        print(secret)
    return 0


if __name__ == "__main__":
    sys.exit(main())

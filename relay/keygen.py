#!/usr/bin/env python3
"""Generate a private key file for the relay's signing account.

Usage: python -m relay.keygen <filename>
"""

import argparse
import logging
import os
import sys

from eth_account import Account

logger = logging.getLogger(__name__)


def generate_key_file(path: str) -> str:
    """Write a fresh private key to ``path``.

    The file is created with owner-only permissions and is never
    overwritten.

    :param path: Destination file.
    :returns: Address of the generated account.
    :raises FileExistsError: If ``path`` already exists.
    """
    account = Account.create()
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w") as file:
        file.write(account.key.hex())
    return account.address


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the key generator CLI."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        description="Generate a private key file for the relay",
    )
    parser.add_argument("filename", help="Path of the key file to create")
    args = parser.parse_args(argv)

    try:
        address = generate_key_file(args.filename)
    except FileExistsError:
        logger.error(f"Refusing to overwrite existing file {args.filename}")
        sys.exit(1)

    logger.info(f"Wrote key for {address} to {args.filename}")


if __name__ == "__main__":
    main()

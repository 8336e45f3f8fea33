"""
Command line front end for tdescrypt.

Encrypts or decrypts a file with 3DES-CBC using a key derived from a password:

    tdescrypt -e -i plain.txt -o plain.enc -p hunter2
    tdescrypt -d -i plain.enc -o plain.txt -p hunter2

The core never exits the process; this module maps its errors to exit codes.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from tdescrypt.core.exceptions import TdesCryptError
from tdescrypt.security.crypto import Direction, decrypt_file, encrypt_file
from .context import RunConfig, build_config
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tdescrypt",
        description="Encrypt or decrypt a file with 3DES-CBC and a password-derived key.",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("-e", dest="encrypt", action="store_true", help="Encrypt the file")
    mode.add_argument("-d", dest="decrypt", action="store_true", help="Decrypt the file")
    parser.add_argument("-i", dest="input", required=True, help="Input file")
    parser.add_argument("-o", dest="output", required=True, help="Output file")
    parser.add_argument(
        "-p",
        dest="password",
        default=None,
        help="Password for encryption or decryption (default: $TDESCRYPT_PASSWORD or prompt)",
    )
    parser.add_argument(
        "--chunk-size",
        default=None,
        help="Read buffer size in bytes (default: $TDESCRYPT_CHUNK_SIZE or 1048576)",
    )
    parser.add_argument(
        "--strong",
        action="store_true",
        help="Use salted Argon2id key derivation (output is not openssl compatible)",
    )
    parser.add_argument(
        "--atomic",
        action="store_true",
        help="Write to a temporary file and rename it over the output on success",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _is_open_failure(exc: OSError, config: RunConfig) -> bool:
    # open() names the offending path in exc.filename; temp file and rename
    # errors name the temporary file instead
    if exc.filename is None or exc.filename2 is not None:
        return False
    return str(exc.filename) in (str(config.input_path), str(config.output_path))


def run(config: RunConfig) -> int:
    """Execute one encrypt/decrypt run and return the process exit code."""
    transform = encrypt_file if config.direction is Direction.ENCRYPT else decrypt_file
    try:
        written = transform(
            config.input_path,
            config.output_path,
            config.password,
            chunk_size=config.chunk_size,
            strong=config.strong,
            atomic=config.atomic,
        )
    except TdesCryptError as exc:
        logger.error("%s failed (%s): %s", config.direction.value, type(exc).__name__, exc)
        return EXIT_FAILURE
    except OSError as exc:
        if _is_open_failure(exc, config):
            logger.debug("open failed: %s", exc)
            logger.error("Unable to open input or output file")
        else:
            logger.error("%s failed: %s", config.direction.value, exc)
        return EXIT_FAILURE

    logger.info("%s: wrote %d bytes to %s", config.direction.value, written, config.output_path)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(config.log_level)
    return run(config)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())

"""Small helper to build the run configuration for the command line tool."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import argparse
import getpass
import logging
import os

from tdescrypt.security.crypto import DEFAULT_CHUNK_SIZE, Direction

PASSWORD_ENV = "TDESCRYPT_PASSWORD"
CHUNK_SIZE_ENV = "TDESCRYPT_CHUNK_SIZE"


@dataclass
class RunConfig:
    """Everything one encrypt/decrypt run needs."""

    direction: Direction
    input_path: Path
    output_path: Path
    password: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    strong: bool = False
    atomic: bool = False
    log_level: int = logging.WARNING


def _parse_chunk_size(raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"chunk size must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"chunk size must be positive, got {value}")
    return value


def build_config(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None,
) -> RunConfig:
    """
    Resolve parsed CLI arguments into a :class:`RunConfig`.

    Lookup order:

    - password: ``-p``, then ``TDESCRYPT_PASSWORD``, then an interactive prompt
    - chunk size: ``--chunk-size``, then ``TDESCRYPT_CHUNK_SIZE``, then 1 MiB

    Raises ``ValueError`` for a malformed chunk size.
    """
    if environ is None:
        environ = os.environ

    direction = Direction.ENCRYPT if args.encrypt else Direction.DECRYPT

    password = args.password
    if password is None:
        password = environ.get(PASSWORD_ENV)
    if password is None:
        password = getpass.getpass("Password: ")

    raw_chunk = args.chunk_size if args.chunk_size is not None else environ.get(CHUNK_SIZE_ENV)
    chunk_size = DEFAULT_CHUNK_SIZE if raw_chunk is None else _parse_chunk_size(raw_chunk)

    return RunConfig(
        direction=direction,
        input_path=Path(args.input),
        output_path=Path(args.output),
        password=password,
        chunk_size=chunk_size,
        strong=args.strong,
        atomic=args.atomic,
        log_level=logging.DEBUG if args.verbose else logging.WARNING,
    )

"""Streaming 3DES-CBC file encryption with PKCS#7 padding.

Output format (default mode): raw ciphertext only. There is no header, salt,
IV or magic number; the key and IV are re-derived from the password. The
result is byte-compatible with

    openssl enc -des-ede3-cbc -md sha256 -nosalt -pass pass:<password>

Strong mode (opt-in) prefixes the ciphertext with a 16 byte Argon2id salt:

    salt (16 bytes) || ciphertext

Encrypted length is always (n // 8 + 1) * 8 for n plaintext bytes.
"""
from __future__ import annotations

import io
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.decrepit.ciphers.algorithms import TripleDES
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, modes

from tdescrypt.core.exceptions import CipherInitFailed, IOFailure, PaddingError
from .kdf import (
    IV_LEN,
    KEY_LEN,
    derive_key_iv,
    derive_key_iv_strong,
    generate_salt,
)

logger = logging.getLogger(__name__)

BLOCK_SIZE = TripleDES.block_size // 8
DEFAULT_CHUNK_SIZE = 1024 * 1024
SALT_LEN = 16


class Direction(str, Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


class ContextState(str, Enum):
    INITIALIZED = "initialized"
    PROCESSING = "processing"
    FINALIZED = "finalized"
    FAILED = "failed"


class CipherContext:
    """
    One-shot 3DES-CBC transform bound to a key, an IV and a direction.

    Lifecycle: INITIALIZED -> PROCESSING -> FINALIZED. Any error moves the
    context to FAILED. FINALIZED and FAILED are terminal; further calls raise
    ``RuntimeError``.

    The context owns a reusable chunk buffer of ``chunk_size`` bytes that
    :func:`process` reads into, so memory use does not grow with input size.
    Partial blocks are carried over between ``update`` calls by the
    underlying primitive, so chunk boundaries never affect the output.
    """

    def __init__(self, key: bytes, iv: bytes, direction: Direction | str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")
        self.direction = Direction(direction)
        self.block_size = BLOCK_SIZE
        self.chunk_size = chunk_size
        self.chunks = 0

        if len(key) != KEY_LEN or len(iv) != IV_LEN:
            raise CipherInitFailed(
                f"3DES-CBC needs a {KEY_LEN} byte key and {IV_LEN} byte IV, got {len(key)} and {len(iv)}"
            )
        try:
            cipher = Cipher(TripleDES(bytes(key)), modes.CBC(bytes(iv)))
            if self.direction is Direction.ENCRYPT:
                self._cipher = cipher.encryptor()
                self._padding = padding.PKCS7(self.block_size * 8).padder()
            else:
                self._cipher = cipher.decryptor()
                self._padding = padding.PKCS7(self.block_size * 8).unpadder()
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CipherInitFailed(f"cipher rejected key/IV: {exc}") from exc

        self.buffer = bytearray(chunk_size)
        self.state = ContextState.INITIALIZED

    def _require_open(self) -> None:
        if self.state in (ContextState.FINALIZED, ContextState.FAILED):
            raise RuntimeError(f"cipher context is {self.state.value}")

    def fail(self) -> None:
        self.state = ContextState.FAILED

    def update(self, data: bytes) -> bytes:
        """Transform one chunk and return whatever output is ready."""
        self._require_open()
        self.state = ContextState.PROCESSING
        try:
            if self.direction is Direction.ENCRYPT:
                out = self._cipher.update(self._padding.update(data))
            else:
                out = self._padding.update(self._cipher.update(data))
        except Exception:
            self.fail()
            raise
        self.chunks += 1
        return out

    def finalize(self) -> bytes:
        """
        Flush the last block.

        Encrypting appends PKCS#7 padding (a whole block when the input is
        block-aligned). Decrypting checks the pad count is in [1, block_size]
        and that every pad byte matches it, then strips it.
        """
        self._require_open()
        try:
            if self.direction is Direction.ENCRYPT:
                tail = self._cipher.update(self._padding.finalize()) + self._cipher.finalize()
            else:
                tail = self._padding.update(self._cipher.finalize()) + self._padding.finalize()
        except ValueError as exc:
            self.fail()
            if self.direction is Direction.ENCRYPT:
                raise
            raise PaddingError(f"bad decrypt (wrong password or corrupted input): {exc}") from exc
        except Exception:
            self.fail()
            raise
        self.state = ContextState.FINALIZED
        return tail


def open_context(
    key: bytes,
    iv: bytes,
    direction: Direction | str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> CipherContext:
    ctx = CipherContext(key, iv, direction, chunk_size=chunk_size)
    logger.debug("opened %s context (chunk_size=%d)", ctx.direction.value, chunk_size)
    return ctx


# closed Python streams raise ValueError("I/O operation on closed file.")
_STREAM_ERRORS = (OSError, ValueError)


def _read_into(stream: BinaryIO, view: memoryview) -> int:
    readinto = getattr(stream, "readinto", None)
    try:
        if readinto is not None:
            n = readinto(view)
        else:
            data = stream.read(len(view))
    except _STREAM_ERRORS as exc:
        raise IOFailure(f"read failed: {exc}") from exc

    if readinto is not None:
        if n is None:
            raise IOFailure("read failed: source returned no data (non-blocking stream)")
        return n

    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise IOFailure(f"read failed: source returned {type(data).__name__}, expected bytes")
    view[: len(data)] = data
    return len(data)


def _write(stream: BinaryIO, data: bytes) -> None:
    try:
        stream.write(data)
    except _STREAM_ERRORS as exc:
        raise IOFailure(f"write failed: {exc}") from exc


def _flush(stream: BinaryIO) -> None:
    flush = getattr(stream, "flush", None)
    if flush is None:
        return
    try:
        flush()
    except _STREAM_ERRORS as exc:
        raise IOFailure(f"flush failed: {exc}") from exc


def process(ctx: CipherContext, input_stream: BinaryIO, output_stream: BinaryIO) -> int:
    """
    Stream input_stream through ctx into output_stream.

    Each chunk is written as soon as it is produced. Returns the number of
    bytes written. On failure the context ends up FAILED and bytes already
    written are left in place.
    """
    written = 0
    view = memoryview(ctx.buffer)
    try:
        while True:
            n = _read_into(input_stream, view)
            if not n:
                break
            out = ctx.update(view[:n])
            if out:
                _write(output_stream, out)
                written += len(out)

        tail = ctx.finalize()
        if tail:
            _write(output_stream, tail)
            written += len(tail)

        _flush(output_stream)
    except Exception:
        ctx.fail()
        raise
    finally:
        view.release()

    logger.debug("%s finished: %d chunks, %d bytes written", ctx.direction.value, ctx.chunks, written)
    return written


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        try:
            data = stream.read(size - len(buf))
        except _STREAM_ERRORS as exc:
            raise IOFailure(f"read failed: {exc}") from exc
        if data is None:
            raise IOFailure("read failed: source returned no data (non-blocking stream)")
        if not data:
            break
        buf += data
    return bytes(buf)


def encrypt_stream(
    inf: BinaryIO,
    outf: BinaryIO,
    password: bytes | str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    strong: bool = False,
) -> int:
    """Encrypt inf into outf with a key derived from password."""
    if strong:
        salt = generate_salt(SALT_LEN)
        material = derive_key_iv_strong(password, salt)
    else:
        salt = b""
        material = derive_key_iv(password)

    try:
        ctx = open_context(material.key, material.iv, Direction.ENCRYPT, chunk_size=chunk_size)
        if salt:
            _write(outf, salt)
        return len(salt) + process(ctx, inf, outf)
    finally:
        material.wipe()


def decrypt_stream(
    inf: BinaryIO,
    outf: BinaryIO,
    password: bytes | str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    strong: bool = False,
) -> int:
    """Decrypt inf into outf; raises PaddingError on a wrong password or corrupt input."""
    if strong:
        salt = _read_exact(inf, SALT_LEN)
        if len(salt) != SALT_LEN:
            raise PaddingError("input too short to contain salt")
        material = derive_key_iv_strong(password, salt)
    else:
        material = derive_key_iv(password)

    try:
        ctx = open_context(material.key, material.iv, Direction.DECRYPT, chunk_size=chunk_size)
        return process(ctx, inf, outf)
    finally:
        material.wipe()


def encrypt_bytes(data: bytes, password: bytes | str, strong: bool = False) -> bytes:
    out = io.BytesIO()
    encrypt_stream(io.BytesIO(data), out, password, strong=strong)
    return out.getvalue()


def decrypt_bytes(blob: bytes, password: bytes | str, strong: bool = False) -> bytes:
    out = io.BytesIO()
    decrypt_stream(io.BytesIO(blob), out, password, strong=strong)
    return out.getvalue()


def _transform_file(
    transform: Callable[..., int],
    in_path: str | Path,
    out_path: str | Path,
    password: bytes | str,
    chunk_size: int,
    strong: bool,
    atomic: bool,
) -> int:
    out_path = Path(out_path)
    if not atomic:
        with open(in_path, "rb") as inf, open(out_path, "wb") as outf:
            return transform(inf, outf, password, chunk_size=chunk_size, strong=strong)

    # write next to the destination so the final rename stays on one filesystem
    tmp_path = None
    try:
        with open(in_path, "rb") as inf, tempfile.NamedTemporaryFile(
            dir=out_path.parent, prefix=f".{out_path.name}.", suffix=".tmp", delete=False
        ) as tmpf:
            tmp_path = Path(tmpf.name)
            written = transform(inf, tmpf, password, chunk_size=chunk_size, strong=strong)
        os.replace(tmp_path, out_path)
        tmp_path = None
        return written
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)


def encrypt_file(
    in_path: str | Path,
    out_path: str | Path,
    password: bytes | str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    strong: bool = False,
    atomic: bool = False,
) -> int:
    """Encrypt the file at in_path into out_path. Returns bytes written."""
    return _transform_file(encrypt_stream, in_path, out_path, password, chunk_size, strong, atomic)


def decrypt_file(
    in_path: str | Path,
    out_path: str | Path,
    password: bytes | str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    strong: bool = False,
    atomic: bool = False,
) -> int:
    """Decrypt the file at in_path into out_path. Returns bytes written."""
    return _transform_file(decrypt_stream, in_path, out_path, password, chunk_size, strong, atomic)

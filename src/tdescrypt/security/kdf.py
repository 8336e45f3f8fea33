"""Password to key/IV derivation for tdescrypt.

The default scheme is OpenSSL's ``EVP_BytesToKey`` with SHA-256, one iteration
and no salt. It is weak on purpose: files produced by earlier versions (and by
``openssl enc -des-ede3-cbc -md sha256 -nosalt``) only decrypt if it stays
exactly as it is.

``derive_key_iv_strong`` is a separate, opt-in Argon2id path.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes

from tdescrypt.core.exceptions import DerivationError

# 3DES (EDE3) in CBC mode
KEY_LEN = 24
IV_LEN = 8
# OpenSSL only accepts an 8 byte salt for EVP_BytesToKey
PKCS5_SALT_LEN = 8


@dataclass
class KeyMaterial:
    """Derived (key, iv) pair. Lives in memory only for one operation."""

    key: bytearray
    iv: bytearray

    def wipe(self) -> None:
        """Zero the key and IV buffers in place."""
        for buf in (self.key, self.iv):
            for i in range(len(buf)):
                buf[i] = 0


def _as_bytes(password) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    return bytes(password)


def bytes_to_key(
    password: bytes | str,
    key_len: int,
    iv_len: int,
    salt: Optional[bytes] = None,
    count: int = 1,
    algorithm: Optional[hashes.HashAlgorithm] = None,
) -> KeyMaterial:
    """
    Port of OpenSSL's EVP_BytesToKey.

    D_0 is empty and D_i = H^count(D_{i-1} || password || salt). Digests are
    concatenated until key_len + iv_len bytes are available; the key is the
    first key_len bytes and the IV the following iv_len bytes.
    """
    if salt is not None and len(salt) != PKCS5_SALT_LEN:
        raise ValueError(f"salt must be {PKCS5_SALT_LEN} bytes")
    if count < 1:
        raise ValueError("count must be >= 1")
    if algorithm is None:
        algorithm = hashes.SHA256()

    data = _as_bytes(password)
    needed = key_len + iv_len
    out = bytearray()
    prev = b""
    try:
        while len(out) < needed:
            h = hashes.Hash(algorithm)
            h.update(prev)
            h.update(data)
            if salt:
                h.update(salt)
            md = h.finalize()
            for _ in range(count - 1):
                h = hashes.Hash(algorithm)
                h.update(md)
                md = h.finalize()
            out += md
            prev = md
    except (UnsupportedAlgorithm, InternalError) as exc:
        raise DerivationError(f"digest failure during key derivation: {exc}") from exc

    return KeyMaterial(key=out[:key_len], iv=out[key_len:needed])


def derive_key_iv(password: bytes | str) -> KeyMaterial:
    """Derive the 3DES key and IV from a password (SHA-256, 1 round, no salt)."""
    return bytes_to_key(password, KEY_LEN, IV_LEN, salt=None, count=1, algorithm=hashes.SHA256())


def generate_salt(length: int = 16) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key_iv_strong(
    password: bytes | str,
    salt: bytes,
    time_cost: int = 3,
    memory_cost: int = 65536,
    parallelism: int = 1,
) -> KeyMaterial:
    """
    Derive the 3DES key and IV with Argon2id.
    Only used when strong mode is requested explicitly.
    """
    try:
        raw = hash_secret_raw(
            secret=_as_bytes(password),
            salt=salt,
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=KEY_LEN + IV_LEN,
            type=Type.ID,
        )
    except HashingError as exc:
        raise DerivationError(f"argon2 failure during key derivation: {exc}") from exc
    raw = bytearray(raw)
    return KeyMaterial(key=raw[:KEY_LEN], iv=raw[KEY_LEN:])

"""Security helpers: key derivation and streaming 3DES-CBC for tdescrypt.

This package provides:
- EVP_BytesToKey (SHA-256, one round, no salt) key/IV derivation
- an opt-in Argon2id derivation for strong mode
- a chunked 3DES-CBC/PKCS#7 stream transform and file helpers built on it
"""

from .kdf import KeyMaterial, bytes_to_key, derive_key_iv, derive_key_iv_strong, generate_salt
from .crypto import (
    CipherContext,
    ContextState,
    Direction,
    open_context,
    process,
    encrypt_stream,
    decrypt_stream,
    encrypt_bytes,
    decrypt_bytes,
    encrypt_file,
    decrypt_file,
)

__all__ = [
    "KeyMaterial",
    "bytes_to_key",
    "derive_key_iv",
    "derive_key_iv_strong",
    "generate_salt",
    "CipherContext",
    "ContextState",
    "Direction",
    "open_context",
    "process",
    "encrypt_stream",
    "decrypt_stream",
    "encrypt_bytes",
    "decrypt_bytes",
    "encrypt_file",
    "decrypt_file",
]

"""Key material generation and key files."""

from __future__ import annotations

import os
from pathlib import Path

from cipherkit.encryption.sensitive import SensitiveBytes
from cipherkit.exceptions import KeyMaterialError
from cipherkit.schemes.registry import scheme_class

MIN_KEY_LENGTH = 32


def key_length_for(scheme_name: str) -> int:
    """Bytes of key material to generate for a scheme (never less than 32)."""
    return max(scheme_class(scheme_name).REQUIRED_KEY_LENGTH, MIN_KEY_LENGTH)


def generate_key(length: int = 48) -> bytes:
    """Generate random key material.

    Args:
        length: Number of bytes. 48 covers every scheme.

    Returns:
        Random bytes of requested length
    """
    if length < 1:
        raise KeyMaterialError(f"Key length must be positive, got {length}")
    return os.urandom(length)


def save_key(path: str, key: bytes) -> None:
    Path(path).write_bytes(bytes(key))


def load_key(path: str) -> SensitiveBytes:
    data = Path(path).read_bytes()
    if not data:
        raise KeyMaterialError(f"Key file is empty: {path}")
    return SensitiveBytes(data)

"""
Key Derivation
==============

Turns a database secret into a 16-byte AES-128 key.

Modes:
    - LEGACY: raw secret bytes, zero-padded or truncated to 16 bytes.
      Byte-compatible with every existing .ht file. Not a real KDF:
      short and near-identical passwords map to the same key.
    - PBKDF2: PBKDF2-HMAC-SHA256 over a per-file random salt.
    - ARGON2ID: memory-hard Argon2id over a per-file random salt.

The salted modes need the salt to decrypt, so the cipher stores it as an
extra component of the wire string.
"""

from __future__ import annotations

import secrets
from enum import Enum
from typing import Final

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

KEY_SIZE: Final[int] = 16  # AES-128
SALT_SIZE: Final[int] = 16

# PBKDF2 defaults (OWASP 2023)
PBKDF2_ITERATIONS: Final[int] = 600_000

# Argon2id defaults (OWASP recommended)
ARGON2_TIME_COST: Final[int] = 3
ARGON2_MEMORY_COST: Final[int] = 65536  # 64 MB
ARGON2_PARALLELISM: Final[int] = 4


class KeyDerivation(str, Enum):
    """How a secret becomes an AES key."""

    LEGACY = "legacy"
    PBKDF2 = "pbkdf2"
    ARGON2ID = "argon2id"

    @property
    def salted(self) -> bool:
        return self is not KeyDerivation.LEGACY


def get_valid_key(secret: str) -> bytes:
    """
    Size a secret to exactly 16 bytes.

    Shorter secrets are padded on the right with zero bytes, longer ones are
    truncated to their first 16 bytes.

    Args:
        secret: Database password

    Returns:
        16 key bytes
    """
    raw = secret.encode("utf-8")
    if len(raw) < KEY_SIZE:
        return raw + b"\x00" * (KEY_SIZE - len(raw))
    return raw[:KEY_SIZE]


def generate_salt() -> bytes:
    """Generate a fresh random salt for the salted modes."""
    return secrets.token_bytes(SALT_SIZE)


def derive_key_pbkdf2(
    secret: str,
    salt: bytes,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """
    Derive a key from a secret using PBKDF2-HMAC-SHA256.

    Args:
        secret: Database password
        salt: Random salt stored alongside the ciphertext
        iterations: PBKDF2 work factor

    Returns:
        16 derived key bytes
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


def derive_key_argon2(
    secret: str,
    salt: bytes,
    time_cost: int = ARGON2_TIME_COST,
    memory_cost: int = ARGON2_MEMORY_COST,
    parallelism: int = ARGON2_PARALLELISM,
) -> bytes:
    """
    Derive a key from a secret using Argon2id.

    Args:
        secret: Database password
        salt: Random salt (at least 16 bytes)
        time_cost: Number of passes
        memory_cost: Memory in KiB
        parallelism: Lanes

    Returns:
        16 derived key bytes
    """
    return hash_secret_raw(
        secret=secret.encode("utf-8"),
        salt=salt,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=KEY_SIZE,
        type=Type.ID,
    )

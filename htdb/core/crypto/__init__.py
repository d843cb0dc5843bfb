"""
htdb Cryptographic Core
=======================

Authenticated encryption for database files at rest.

Architecture:
    1. Key sizing / derivation (legacy, PBKDF2, Argon2id)
    2. AES-128-GCM with a fresh random nonce per write
    3. Hex wire encoding joined with '/'

Security Properties:
    - All encryption is authenticated (AEAD)
    - Tags are verified before plaintext is released
    - Secure RNG for nonces and salts
"""

from htdb.core.crypto.aes_gcm import (
    AuthenticationError,
    DecodeError,
    MalformedWireError,
    WireCipher,
    decrypt,
    encrypt,
)
from htdb.core.crypto.kdf import KeyDerivation, get_valid_key

__all__ = [
    "WireCipher",
    "encrypt",
    "decrypt",
    "get_valid_key",
    "KeyDerivation",
    "DecodeError",
    "MalformedWireError",
    "AuthenticationError",
]

"""
AES-128-GCM Wire Cipher
=======================

Authenticated encryption of database payloads into a printable wire string.

Wire format:
    legacy key mode:  hex(nonce)/hex(ciphertext)/hex(tag)
    salted key modes: hex(salt)/hex(nonce)/hex(ciphertext)/hex(tag)

Security Properties:
    - 128-bit key
    - 96-bit random nonce, fresh for every encryption
    - 128-bit authentication tag, no additional authenticated data
    - Tag is verified before any plaintext is returned

WARNING:
    - The legacy key mode pads/truncates the password instead of running
      a KDF. Use a salted mode for new databases that do not need to be
      read by older tooling.
"""

from __future__ import annotations

import binascii
import secrets
from typing import TYPE_CHECKING, Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from htdb.core.crypto.kdf import (
    SALT_SIZE,
    KeyDerivation,
    derive_key_argon2,
    derive_key_pbkdf2,
    generate_salt,
    get_valid_key,
)

if TYPE_CHECKING:
    from htdb.core.config import CryptoConfig

AES_NONCE_SIZE: Final[int] = 12  # 96 bits (NIST recommended for GCM)
AES_TAG_SIZE: Final[int] = 16  # 128 bits
WIRE_SEPARATOR: Final[str] = "/"


class DecodeError(Exception):
    """Raised when a wire string cannot be turned back into plaintext."""
    pass


class MalformedWireError(DecodeError):
    """Raised when a wire string has the wrong shape or is not hex."""
    pass


class AuthenticationError(DecodeError):
    """
    Raised when the GCM tag does not verify.

    Means a wrong secret, or a file that was corrupted or tampered with.
    """
    pass


def _unhex(part: str, label: str) -> bytes:
    try:
        return binascii.unhexlify(part)
    except (binascii.Error, ValueError) as e:
        raise MalformedWireError(f"Wire {label} is not valid hex") from e


class WireCipher:
    """
    Encrypts and decrypts payloads for one secret.

    Usage:
        cipher = WireCipher("password")
        wire = cipher.encrypt(b"payload")
        assert cipher.decrypt(wire) == b"payload"

    The legacy key is computed once; salted modes derive a key per call
    because every encryption draws a new salt.
    """

    __slots__ = ("_secret", "_config", "_legacy_key")

    def __init__(self, secret: str, config: Optional[CryptoConfig] = None) -> None:
        """
        Initialize the cipher.

        Args:
            secret: Database password
            config: Key derivation settings (legacy mode if not provided)
        """
        if config is None:
            from htdb.core.config import CryptoConfig
            config = CryptoConfig()

        self._secret = secret
        self._config = config
        self._legacy_key = get_valid_key(secret)

    @property
    def key_derivation(self) -> KeyDerivation:
        return self._config.key_derivation

    @property
    def wire_parts(self) -> int:
        """Number of '/'-separated components this cipher reads and writes."""
        return 4 if self.key_derivation.salted else 3

    def _derive_key(self, salt: bytes) -> bytes:
        mode = self._config.key_derivation
        if mode is KeyDerivation.PBKDF2:
            return derive_key_pbkdf2(
                self._secret, salt, iterations=self._config.pbkdf2_iterations
            )
        if mode is KeyDerivation.ARGON2ID:
            return derive_key_argon2(
                self._secret,
                salt,
                time_cost=self._config.argon2_time_cost,
                memory_cost=self._config.argon2_memory_cost,
                parallelism=self._config.argon2_parallelism,
            )
        return self._legacy_key

    def encrypt(self, plaintext: bytes) -> str:
        """
        Encrypt plaintext into a wire string.

        Args:
            plaintext: Data to encrypt (can be empty)

        Returns:
            Lowercase hex components joined with '/'
        """
        salt = generate_salt() if self.key_derivation.salted else b""
        nonce = secrets.token_bytes(AES_NONCE_SIZE)

        sealed = AESGCM(self._derive_key(salt)).encrypt(nonce, plaintext, None)
        ciphertext, tag = sealed[:-AES_TAG_SIZE], sealed[-AES_TAG_SIZE:]

        parts = [nonce.hex(), ciphertext.hex(), tag.hex()]
        if salt:
            parts.insert(0, salt.hex())
        return WIRE_SEPARATOR.join(parts)

    def decrypt(self, wire: str) -> bytes:
        """
        Decrypt a wire string, verifying its authentication tag.

        Args:
            wire: Output of encrypt()

        Returns:
            Decrypted plaintext bytes

        Raises:
            MalformedWireError: Wrong component count, bad hex, bad sizes
            AuthenticationError: Tag verification failed
        """
        parts = wire.strip().split(WIRE_SEPARATOR)
        if len(parts) != self.wire_parts:
            raise MalformedWireError(
                f"Expected {self.wire_parts} wire components, got {len(parts)}"
            )

        salt = b""
        if self.key_derivation.salted:
            salt = _unhex(parts.pop(0), "salt")
            if len(salt) != SALT_SIZE:
                raise MalformedWireError(f"Salt must be exactly {SALT_SIZE} bytes")

        nonce = _unhex(parts[0], "nonce")
        ciphertext = _unhex(parts[1], "ciphertext")
        tag = _unhex(parts[2], "tag")

        if len(nonce) != AES_NONCE_SIZE:
            raise MalformedWireError(f"Nonce must be exactly {AES_NONCE_SIZE} bytes")
        if len(tag) != AES_TAG_SIZE:
            raise MalformedWireError(f"Tag must be exactly {AES_TAG_SIZE} bytes")

        try:
            return AESGCM(self._derive_key(salt)).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise AuthenticationError(
                "Authentication failed: wrong secret or corrupted data"
            ) from e

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return f"WireCipher(key_derivation={self.key_derivation.value!r})"


def encrypt(plaintext: bytes, secret: str) -> str:
    """Encrypt with the legacy key mode."""
    return WireCipher(secret).encrypt(plaintext)


def decrypt(wire: str, secret: str) -> bytes:
    """Decrypt a legacy-mode wire string."""
    return WireCipher(secret).decrypt(wire)

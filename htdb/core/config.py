"""
Configuration Module
====================

Immutable, environment-aware configuration for database handles.

Features:
- Immutable configuration after initialization
- Environment variable override support (HTDB_ prefix)
- Secrets are never read from configuration
- Validated values, ConfigError on anything invalid
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from htdb.core.crypto.kdf import (
    ARGON2_MEMORY_COST,
    ARGON2_PARALLELISM,
    ARGON2_TIME_COST,
    PBKDF2_ITERATIONS,
    KeyDerivation,
)

DATABASE_SUFFIX: Final[str] = ".ht"

_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "credential",
})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class ConfigError(ValueError):
    """Raised for invalid configuration or deployment settings."""
    pass


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might carry a secret."""
    # key_derivation names an algorithm, not key material
    if key.endswith("key_derivation"):
        return False
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "htdb" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "htdb"
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "htdb" / "logs"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Persistence settings."""

    # Refuse to treat an undecryptable file as an empty database
    strict_decode: bool = True


@dataclass(frozen=True, slots=True)
class CryptoConfig:
    """Key derivation settings."""

    key_derivation: KeyDerivation = KeyDerivation.LEGACY
    pbkdf2_iterations: int = PBKDF2_ITERATIONS
    argon2_time_cost: int = ARGON2_TIME_COST
    argon2_memory_cost: int = ARGON2_MEMORY_COST
    argon2_parallelism: int = ARGON2_PARALLELISM

    def __post_init__(self) -> None:
        """Validate crypto settings."""
        if not isinstance(self.key_derivation, KeyDerivation):
            try:
                object.__setattr__(self, "key_derivation", KeyDerivation(str(self.key_derivation).lower()))
            except ValueError as e:
                raise ConfigError(f"Unknown key derivation: {self.key_derivation}") from e
        if self.pbkdf2_iterations < 1:
            raise ConfigError("PBKDF2 iterations must be positive")
        if self.argon2_time_cost < 1:
            raise ConfigError("Argon2 time cost must be positive")
        if self.argon2_parallelism < 1:
            raise ConfigError("Argon2 parallelism must be positive")
        if self.argon2_memory_cost < 8 * self.argon2_parallelism:
            raise ConfigError("Argon2 memory cost must be at least 8 KiB per lane")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging settings."""

    level: str = "WARNING"
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ConfigError(f"Invalid log level: {self.level}")


class HtdbConfig:
    """
    Immutable configuration with environment variable overrides.

    Usage:
        config = HtdbConfig.load()
        config.crypto.key_derivation
        config.storage.strict_decode

    Environment variables use the HTDB_ prefix and double underscores for
    sections:
        HTDB_STORAGE__STRICT_DECODE=false
        HTDB_CRYPTO__KEY_DERIVATION=pbkdf2
        HTDB_CRYPTO__PBKDF2_ITERATIONS=200000
        HTDB_LOGGING__LEVEL=DEBUG
    """

    __slots__ = ("_storage", "_crypto", "_logging", "_frozen")

    def __init__(
        self,
        storage: Optional[StorageConfig] = None,
        crypto: Optional[CryptoConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_storage", storage or StorageConfig())
        object.__setattr__(self, "_crypto", crypto or CryptoConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_frozen", True)

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def crypto(self) -> CryptoConfig:
        return self._crypto

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @classmethod
    def load(cls, env_prefix: str = "HTDB") -> HtdbConfig:
        """
        Load configuration with environment variable overrides.

        Args:
            env_prefix: Prefix for environment variables (default: HTDB)

        Returns:
            Configured HtdbConfig instance

        Raises:
            ConfigError: If an override has an invalid value
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        storage_kwargs: dict[str, Any] = {}
        if "storage.strict_decode" in env_overrides:
            storage_kwargs["strict_decode"] = _parse_bool(env_overrides["storage.strict_decode"])

        crypto_kwargs: dict[str, Any] = {}
        if "crypto.key_derivation" in env_overrides:
            crypto_kwargs["key_derivation"] = env_overrides["crypto.key_derivation"]
        for name in ("pbkdf2_iterations", "argon2_time_cost", "argon2_memory_cost", "argon2_parallelism"):
            if f"crypto.{name}" in env_overrides:
                crypto_kwargs[name] = _parse_int(name, env_overrides[f"crypto.{name}"])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = _parse_bool(env_overrides["logging.enable_console"])
        if "logging.enable_file" in env_overrides:
            logging_kwargs["enable_file"] = _parse_bool(env_overrides["logging.enable_file"])
        if "logging.enable_json" in env_overrides:
            logging_kwargs["enable_json"] = _parse_bool(env_overrides["logging.enable_json"])
        if "logging.log_dir" in env_overrides:
            logging_kwargs["log_dir"] = Path(env_overrides["logging.log_dir"])

        return cls(
            storage=StorageConfig(**storage_kwargs) if storage_kwargs else None,
            crypto=CryptoConfig(**crypto_kwargs) if crypto_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # HTDB_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def __repr__(self) -> str:
        return (
            f"HtdbConfig(key_derivation={self._crypto.key_derivation.value!r}, "
            f"strict_decode={self._storage.strict_decode})"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("HtdbConfig is immutable after initialization")
        super().__setattr__(name, value)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer: {value!r}") from e

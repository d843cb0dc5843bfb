"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from htdb.core.config import (
    ConfigError,
    CryptoConfig,
    HtdbConfig,
    LoggingConfig,
)
from htdb.core.crypto import KeyDerivation


def test_defaults():
    config = HtdbConfig.load()
    assert config.storage.strict_decode is True
    assert config.crypto.key_derivation is KeyDerivation.LEGACY
    assert config.logging.level == "WARNING"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HTDB_STORAGE__STRICT_DECODE", "false")
    monkeypatch.setenv("HTDB_CRYPTO__KEY_DERIVATION", "PBKDF2")
    monkeypatch.setenv("HTDB_CRYPTO__PBKDF2_ITERATIONS", "200000")
    monkeypatch.setenv("HTDB_LOGGING__LEVEL", "debug")
    monkeypatch.setenv("HTDB_LOGGING__LOG_DIR", str(tmp_path))

    config = HtdbConfig.load()

    assert config.storage.strict_decode is False
    assert config.crypto.key_derivation is KeyDerivation.PBKDF2
    assert config.crypto.pbkdf2_iterations == 200_000
    assert config.logging.level == "debug"
    assert config.logging.log_dir == Path(tmp_path)


def test_custom_prefix(monkeypatch):
    monkeypatch.setenv("MYAPP_STORAGE__STRICT_DECODE", "0")
    assert HtdbConfig.load(env_prefix="MYAPP").storage.strict_decode is False


def test_secret_variables_are_not_config(monkeypatch):
    monkeypatch.setenv("HTDB_SECRET", "hunter2")
    monkeypatch.setenv("HTDB_CRYPTO__PASSWORD", "hunter2")
    assert "hunter2" not in repr(HtdbConfig.load())
    assert HtdbConfig._parse_env_overrides("HTDB") == {}


@pytest.mark.parametrize("name,value", [
    ("HTDB_CRYPTO__KEY_DERIVATION", "rot13"),
    ("HTDB_CRYPTO__PBKDF2_ITERATIONS", "many"),
    ("HTDB_CRYPTO__PBKDF2_ITERATIONS", "0"),
    ("HTDB_LOGGING__LEVEL", "LOUD"),
])
def test_invalid_overrides(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        HtdbConfig.load()


def test_argon2_memory_must_cover_lanes():
    with pytest.raises(ConfigError):
        CryptoConfig(argon2_parallelism=4, argon2_memory_cost=16)


def test_key_derivation_accepts_strings():
    assert CryptoConfig(key_derivation="argon2id").key_derivation is KeyDerivation.ARGON2ID


def test_config_is_immutable():
    config = HtdbConfig()
    with pytest.raises(AttributeError):
        config._storage = None
    with pytest.raises(AttributeError):
        config.logging.level = "DEBUG"


def test_logging_config_validates_level():
    with pytest.raises(ConfigError):
        LoggingConfig(level="VERBOSE")

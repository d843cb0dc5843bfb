"""Shared fixtures for the htdb test suite."""

from __future__ import annotations

import logging
import os

import pytest

from htdb import Database, HtdbConfig
from htdb.core.config import CryptoConfig
from htdb.core.crypto import KeyDerivation

SECRET = "correct horse battery"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep HTDB_* variables from the outer shell out of every test."""
    for key in list(os.environ):
        if key.startswith("HTDB_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_htdb_logger():
    """Undo handler setup done by get_logger()/the CLI between tests."""
    yield
    logger = logging.getLogger("htdb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.ht"


@pytest.fixture
def config():
    return HtdbConfig()


@pytest.fixture
def fast_pbkdf2():
    return CryptoConfig(key_derivation=KeyDerivation.PBKDF2, pbkdf2_iterations=1_000)


@pytest.fixture
def fast_argon2():
    return CryptoConfig(
        key_derivation=KeyDerivation.ARGON2ID,
        argon2_time_cost=1,
        argon2_memory_cost=64,
        argon2_parallelism=1,
    )


@pytest.fixture
def db(db_path, config):
    return Database(db_path, SECRET, config=config)


@pytest.fixture
def users(db):
    db.create_table("users", ["id", "name"])
    return db

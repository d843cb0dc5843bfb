"""
Persistence Layer
=================

Whole-file load and store of a database's tables.

Every load reads, decrypts and parses the entire file; every store
serializes, encrypts and overwrites the entire file in a single write.

File Format:
    The file content is the cipher's wire string, nothing else. The
    plaintext is JSON:
        {"<table>": {"columns": [...], "records": [{...}, ...]}}

Limitations:
    - No atomic rename: a crash mid-write can leave a truncated file,
      which the next load reports as unreadable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from htdb.core.crypto.aes_gcm import DecodeError, WireCipher
from htdb.db.table import Table
from htdb.utils.validators import validate_database_path

_log = logging.getLogger("htdb.storage")


class UnreadableDatabaseError(Exception):
    """
    Raised when a database file exists but cannot be read back.

    Covers a wrong secret, a corrupted or truncated file and plaintext that
    is not a table mapping. The underlying cause is chained.
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Database file {path} could not be read: {reason}")
        self.path = path
        self.reason = reason


def _as_cipher(cipher: WireCipher | str) -> WireCipher:
    # A bare secret means the legacy key mode
    return WireCipher(cipher) if isinstance(cipher, str) else cipher


def serialize_tables(tables: Mapping[str, Table]) -> bytes:
    """Serialize a table mapping to UTF-8 JSON bytes."""
    data = {name: table.to_dict() for name, table in tables.items()}
    return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def deserialize_tables(payload: bytes) -> dict[str, Table]:
    """
    Parse UTF-8 JSON bytes into a table mapping.

    Raises:
        ValueError: If the payload is not a table mapping
    """
    data = json.loads(payload.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Database payload must be an object")
    return {str(name): Table.from_dict(entry) for name, entry in data.items()}


def load(path: str | Path, cipher: WireCipher | str, strict: bool = True) -> dict[str, Table]:
    """
    Load every table from a database file.

    A missing file is a new database and loads as an empty mapping.

    Args:
        path: Database file
        cipher: Cipher bound to the database secret, or the secret itself
        strict: Raise on unreadable files instead of returning an empty mapping

    Returns:
        Mapping of table name to Table

    Raises:
        UnreadableDatabaseError: If strict and the file cannot be decrypted or parsed
        OSError: If the file exists but cannot be read
    """
    path = Path(path)
    cipher = _as_cipher(cipher)
    if not path.exists():
        _log.debug("No database file at %s, starting empty", path)
        return {}

    raw = path.read_bytes()

    try:
        wire = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        return _unreadable(path, "MalformedWireError", e, strict)

    try:
        payload = cipher.decrypt(wire)
    except DecodeError as e:
        return _unreadable(path, type(e).__name__, e, strict)

    try:
        tables = deserialize_tables(payload)
    except (ValueError, UnicodeDecodeError) as e:
        return _unreadable(path, "invalid table data", e, strict)

    _log.debug("Loaded %d table(s) from %s", len(tables), path)
    return tables


def _unreadable(path: Path, reason: str, cause: Exception, strict: bool) -> dict[str, Table]:
    if strict:
        _log.error("Database file %s is unreadable (%s)", path, reason)
        raise UnreadableDatabaseError(path, reason) from cause
    _log.warning("Database file %s is unreadable (%s), treating it as empty", path, reason)
    return {}


def store(path: str | Path, cipher: WireCipher | str, tables: Mapping[str, Table]) -> None:
    """
    Encrypt and overwrite a database file with the given tables.

    Args:
        path: Database file, must end in '.ht'
        cipher: Cipher bound to the database secret, or the secret itself
        tables: Complete table mapping to persist

    Raises:
        ConfigError: If the path does not end in '.ht' (before any I/O)
        OSError: If the file cannot be written
    """
    path = validate_database_path(path)
    wire = _as_cipher(cipher).encrypt(serialize_tables(tables))
    path.write_text(wire, encoding="utf-8")
    _log.debug("Stored %d table(s) to %s", len(tables), path)

"""
htdb - Encrypted Single-File Table Store
========================================

Named tables with fixed column lists and string records, kept in one
AES-GCM encrypted file per database.

Security Notice:
- Secrets and ciphertext are never logged
- Tags are verified before any plaintext is used
- An unreadable file is an error, not an empty database
"""

from htdb.core.config import ConfigError, HtdbConfig
from htdb.core.crypto import (
    AuthenticationError,
    DecodeError,
    KeyDerivation,
    MalformedWireError,
)
from htdb.core.logging import get_logger
from htdb.db import (
    ColumnExistsError,
    ColumnMissingError,
    Database,
    SchemaError,
    Table,
    TableExistsError,
    TableMissingError,
    UnreadableDatabaseError,
)
from htdb.utils.validators import ValidationError

__version__ = "0.1.0"

__all__ = [
    "Database",
    "Table",
    "HtdbConfig",
    "KeyDerivation",
    "get_logger",
    "ConfigError",
    "SchemaError",
    "TableExistsError",
    "TableMissingError",
    "ColumnExistsError",
    "ColumnMissingError",
    "DecodeError",
    "MalformedWireError",
    "AuthenticationError",
    "UnreadableDatabaseError",
    "ValidationError",
    "__version__",
]

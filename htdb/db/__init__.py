"""
Database module - Table model, persistence and the engine.

Storage Considerations:
- The whole database lives in one encrypted '.ht' file
- Every call reloads the file; every change rewrites it
- Queries are exact-match only, evaluated by linear scan
"""

from htdb.db.engine import Database
from htdb.db.mutations import MutationQueue
from htdb.db.storage import UnreadableDatabaseError, load, store
from htdb.db.table import (
    ColumnExistsError,
    ColumnMissingError,
    SchemaError,
    Table,
    TableExistsError,
    TableMissingError,
    matches,
    normalize,
)

__all__ = [
    "Database",
    "MutationQueue",
    "Table",
    "normalize",
    "matches",
    "load",
    "store",
    "UnreadableDatabaseError",
    "SchemaError",
    "TableExistsError",
    "TableMissingError",
    "ColumnExistsError",
    "ColumnMissingError",
]

"""
Database Engine
===============

An encrypted, single-file table store.

Every public method:
    1. takes the handle's lock for its whole duration
    2. reloads the tables from the file (the file is the only durable state)
    3. works on the in-memory tables
    4. for changes, re-encrypts and rewrites the whole file before returning

Record-level changes (insert, update, delete, renames, drop_all) are
submitted to a FIFO mutation queue and drained under the same lock.

Usage:
    db = Database("app.ht", "password")
    db.create_table("users", ["id", "name"])
    db.insert("users", {"id": "1", "name": "Alice"})
    db.select("users", {"id": "1"})
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Mapping, Optional, Sequence

from htdb.core.config import HtdbConfig
from htdb.core.crypto.aes_gcm import WireCipher
from htdb.db import storage
from htdb.db.mutations import (
    Delete,
    DropAll,
    Insert,
    Mutation,
    MutationQueue,
    RenameColumn,
    RenameTable,
    Update,
)
from htdb.db.table import (
    ColumnExistsError,
    ColumnMissingError,
    Record,
    Table,
    TableExistsError,
    TableMissingError,
    validate_columns,
)
from htdb.utils.validators import (
    validate_database_path,
    validate_identifier,
    validate_string_map,
)


class Database:
    """
    Handle on one encrypted database file.

    Handles are independent: each owns its lock, cipher and queue, so
    several databases (or the same file under different settings) can be
    open in one process. Two handles on the same file are not coordinated
    with each other.

    Raises (from every method):
        SchemaError: Table or column conflicts
        UnreadableDatabaseError: The file exists but cannot be decrypted
        OSError: Filesystem failures while reading or writing
    """

    __slots__ = ("_path", "_cipher", "_config", "_lock", "_queue", "_tables", "_log")

    def __init__(
        self,
        path: str | Path,
        secret: str,
        config: Optional[HtdbConfig] = None,
    ) -> None:
        """
        Open a database handle. No I/O happens until the first call.

        Args:
            path: Database file, must end in '.ht'
            secret: Password protecting the file
            config: Settings (HtdbConfig.load() if not provided)

        Raises:
            ConfigError: If the path does not end in '.ht'
        """
        self._path = validate_database_path(path)
        self._config = config or HtdbConfig.load()
        self._cipher = WireCipher(secret, self._config.crypto)
        self._lock = threading.RLock()
        self._queue = MutationQueue()
        self._tables: dict[str, Table] = {}
        self._log = logging.getLogger("htdb.engine")

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence cycle
    # ------------------------------------------------------------------

    def _reload(self) -> dict[str, Table]:
        self._tables = storage.load(
            self._path, self._cipher, strict=self._config.storage.strict_decode
        )
        return self._tables

    def _persist(self) -> None:
        storage.store(self._path, self._cipher, self._tables)

    def _table(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise TableMissingError(name) from None

    def _submit(self, item: Mutation) -> None:
        with self._lock:
            self._queue.push(item)
            self._queue.drain(self._apply)

    def _apply(self, item: Mutation) -> None:
        self._reload()
        affected = item.apply(self._tables)
        self._persist()
        self._log.debug("Applied %s to %s (%d record(s))", type(item).__name__, self._path, affected)

    # ------------------------------------------------------------------
    # Table lifecycle
    # ------------------------------------------------------------------

    def create_table(self, name: str, columns: Sequence[str]) -> None:
        """
        Create an empty table. The column order is the record shape.

        Raises:
            TableExistsError: If the table already exists
            SchemaError: If the column list is invalid
        """
        validate_identifier(name, field_name="table name")
        columns = validate_columns(columns)
        with self._lock:
            self._reload()
            if name in self._tables:
                raise TableExistsError(name)
            self._tables[name] = Table(columns=columns)
            self._persist()
            self._log.info("Created table %r with %d column(s)", name, len(columns))

    def create_table_if_not_exists(self, name: str, columns: Sequence[str]) -> bool:
        """Create a table unless it exists. Returns True if it was created."""
        with self._lock:
            try:
                self.create_table(name, columns)
            except TableExistsError:
                return False
            return True

    def delete_table(self, name: str) -> None:
        """
        Remove a table and all its records.

        Raises:
            TableMissingError: If the table does not exist
        """
        with self._lock:
            self._reload()
            self._table(name)
            del self._tables[name]
            self._persist()
            self._log.info("Deleted table %r", name)

    def delete_table_if_exists(self, name: str) -> bool:
        """Remove a table if present. Returns True if it was removed."""
        with self._lock:
            try:
                self.delete_table(name)
            except TableMissingError:
                return False
            return True

    def rename_table(self, name: str, new_name: str) -> None:
        """
        Raises:
            TableMissingError: If the table does not exist
            TableExistsError: If new_name is taken
        """
        validate_identifier(new_name, field_name="table name")
        self._submit(RenameTable(name, new_name))

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def add_column(self, name: str, column: str, default: str = "") -> None:
        """
        Append a column; existing records get the default value.

        Raises:
            TableMissingError: If the table does not exist
            ColumnExistsError: If the column already exists
        """
        validate_identifier(column, field_name="column name")
        if not isinstance(default, str):
            raise TypeError("Column default must be a string")
        with self._lock:
            self._reload()
            table = self._table(name)
            if column in table.columns:
                raise ColumnExistsError(name, column)
            table.add_column(column, default)
            self._persist()

    def delete_column(self, name: str, column: str) -> None:
        """
        Raises:
            TableMissingError: If the table does not exist
            ColumnMissingError: If the column does not exist
        """
        with self._lock:
            self._reload()
            table = self._table(name)
            if column not in table.columns:
                raise ColumnMissingError(name, column)
            table.delete_column(column)
            self._persist()

    def rename_column(self, name: str, column: str, new_name: str) -> None:
        validate_identifier(new_name, field_name="column name")
        self._submit(RenameColumn(name, column, new_name))

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def insert(self, name: str, record: Mapping[str, str]) -> None:
        """
        Insert a record. Unknown columns are dropped, missing ones are
        stored as empty strings.
        """
        self._submit(Insert(name, validate_string_map(record, "record")))

    def update(self, name: str, query: Mapping[str, str], patch: Mapping[str, str]) -> None:
        """Merge patch over every record matching query."""
        self._submit(Update(
            name,
            validate_string_map(query, "query"),
            validate_string_map(patch, "patch"),
        ))

    def delete(self, name: str, query: Mapping[str, str]) -> None:
        """Remove every record matching query. An empty query removes all."""
        self._submit(Delete(name, validate_string_map(query, "query")))

    def drop_all(self) -> None:
        """Remove every record from every table, keeping the tables."""
        self._submit(DropAll())

    def select(self, name: str, query: Optional[Mapping[str, str]] = None) -> list[Record]:
        """
        Records matching query (all records if None), in storage order.

        Read-only: the file is reloaded but never written.
        """
        if query is not None:
            query = validate_string_map(query, "query")
        with self._lock:
            self._reload()
            return self._table(name).select(query)

    def select_json(self, name: str, query: Optional[Mapping[str, str]] = None) -> str:
        """select() serialized as a JSON array of objects."""
        return json.dumps(self.select(name, query), ensure_ascii=False)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def read_tables(self) -> dict[str, Table]:
        """A deep copy of every table."""
        with self._lock:
            return copy.deepcopy(self._reload())

    def table_names(self) -> list[str]:
        with self._lock:
            return list(self._reload())

    def column_names(self, name: str) -> list[str]:
        with self._lock:
            self._reload()
            return list(self._table(name).columns)

    def record_count(self, name: str) -> int:
        with self._lock:
            self._reload()
            return len(self._table(name).records)

    def __repr__(self) -> str:
        """Safe representation without the secret."""
        return f"Database(path={str(self._path)!r}, cipher={self._cipher!r})"

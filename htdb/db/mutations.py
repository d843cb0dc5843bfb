"""
Mutations
=========

Deferred descriptions of record-level changes and the FIFO queue that
applies them.

Each mutation carries its own copies of its operands, so a caller mutating
its dict after submitting does not change what gets applied.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterator, Mapping, Union

from htdb.db.table import (
    ColumnExistsError,
    ColumnMissingError,
    Table,
    TableExistsError,
    TableMissingError,
)

Tables = dict[str, Table]


def _require(tables: Mapping[str, Table], name: str) -> Table:
    try:
        return tables[name]
    except KeyError:
        raise TableMissingError(name) from None


@dataclass(frozen=True)
class Insert:
    table: str
    record: dict[str, str] = field(default_factory=dict)

    def apply(self, tables: Tables) -> int:
        _require(tables, self.table).append(self.record)
        return 1


@dataclass(frozen=True)
class Update:
    table: str
    query: dict[str, str] = field(default_factory=dict)
    patch: dict[str, str] = field(default_factory=dict)

    def apply(self, tables: Tables) -> int:
        return _require(tables, self.table).update(self.query, self.patch)


@dataclass(frozen=True)
class Delete:
    table: str
    query: dict[str, str] = field(default_factory=dict)

    def apply(self, tables: Tables) -> int:
        return _require(tables, self.table).delete(self.query)


@dataclass(frozen=True)
class DropAll:
    """Empty every table, keeping the schemas."""

    def apply(self, tables: Tables) -> int:
        removed = 0
        for table in tables.values():
            removed += len(table.records)
            table.records = []
        return removed


@dataclass(frozen=True)
class RenameTable:
    table: str
    new_name: str

    def apply(self, tables: Tables) -> int:
        source = _require(tables, self.table)
        if self.new_name in tables:
            raise TableExistsError(self.new_name)
        tables[self.new_name] = source
        del tables[self.table]
        return 0


@dataclass(frozen=True)
class RenameColumn:
    table: str
    column: str
    new_name: str

    def apply(self, tables: Tables) -> int:
        target = _require(tables, self.table)
        if self.column not in target.columns:
            raise ColumnMissingError(self.table, self.column)
        if self.new_name in target.columns:
            raise ColumnExistsError(self.table, self.new_name)
        target.rename_column(self.column, self.new_name)
        return 0


Mutation = Union[Insert, Update, Delete, DropAll, RenameTable, RenameColumn]


class MutationQueue:
    """
    First-in, first-out queue of pending mutations.

    drain() applies items in submission order. If one fails, the items
    behind it are discarded and the error propagates; nothing after a
    failed mutation is applied.

    Not thread-safe on its own; the owning Database serializes access.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: Deque[Mutation] = deque()

    def push(self, item: Mutation) -> None:
        self._items.append(item)

    def drain(self, apply: Callable[[Mutation], None]) -> int:
        """
        Apply every queued item, oldest first.

        Returns:
            Number of items applied
        """
        applied = 0
        while self._items:
            item = self._items.popleft()
            try:
                apply(item)
            except Exception:
                self._items.clear()
                raise
            applied += 1
        return applied

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Mutation]:
        return iter(tuple(self._items))

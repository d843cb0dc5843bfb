"""
Table Model
===========

Tables, records and the pure operations on them. No I/O happens here.

Invariant:
    Every record stored in Table.records has exactly the keys of
    Table.columns, in column order, with string values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from htdb.utils.validators import ValidationError, validate_identifier

Record = dict[str, str]


class SchemaError(Exception):
    """Raised when an operation conflicts with the table layout."""
    pass


class TableExistsError(SchemaError):
    def __init__(self, table: str) -> None:
        super().__init__(f'Table "{table}" already exists.')
        self.table = table


class TableMissingError(SchemaError):
    def __init__(self, table: str) -> None:
        super().__init__(f'Table "{table}" does not exist.')
        self.table = table


class ColumnExistsError(SchemaError):
    def __init__(self, table: str, column: str) -> None:
        super().__init__(f'Column "{column}" already exists in table "{table}".')
        self.table = table
        self.column = column


class ColumnMissingError(SchemaError):
    def __init__(self, table: str, column: str) -> None:
        super().__init__(f'Column "{column}" does not exist in table "{table}".')
        self.table = table
        self.column = column


def normalize(columns: Sequence[str], record: Mapping[str, str]) -> Record:
    """
    Project a record onto a column list.

    Declared columns missing from the record become empty strings and
    columns that are not declared are dropped. The result follows the
    column order.
    """
    return {column: record.get(column, "") for column in columns}


def matches(record: Mapping[str, str], query: Optional[Mapping[str, str]]) -> bool:
    """
    Check a record against a conjunction of column == value predicates.

    An empty (or missing) query matches every record. A query column the
    record does not have never matches.
    """
    if not query:
        return True
    return all(
        column in record and record[column] == value
        for column, value in query.items()
    )


def validate_columns(columns: Sequence[str]) -> list[str]:
    """
    Validate a column list for a new table.

    Raises:
        SchemaError: If a name is empty, not a string, or repeated
    """
    if isinstance(columns, str):
        raise SchemaError("Columns must be a list of names, not a single string")

    result: list[str] = []
    for column in columns:
        try:
            validate_identifier(column, field_name="column name")
        except ValidationError as e:
            raise SchemaError(str(e)) from e
        if column in result:
            raise SchemaError(f'Column "{column}" is listed more than once.')
        result.append(column)
    return result


@dataclass
class Table:
    """A fixed column list plus the records stored under it."""

    columns: list[str] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)

    def append(self, record: Mapping[str, str]) -> Record:
        """Normalize a record and append it."""
        row = normalize(self.columns, record)
        self.records.append(row)
        return row

    def select(self, query: Optional[Mapping[str, str]] = None) -> list[Record]:
        """Copies of the matching records, in storage order."""
        return [dict(record) for record in self.records if matches(record, query)]

    def update(self, query: Mapping[str, str], patch: Mapping[str, str]) -> int:
        """
        Merge a patch over every matching record.

        Patch columns the table does not declare are ignored. Returns the
        number of records changed.
        """
        changed = 0
        rows: list[Record] = []
        for record in self.records:
            if matches(record, query):
                rows.append(normalize(self.columns, {**record, **patch}))
                changed += 1
            else:
                rows.append(normalize(self.columns, record))
        self.records = rows
        return changed

    def delete(self, query: Mapping[str, str]) -> int:
        """Remove every matching record. Returns the number removed."""
        kept = [record for record in self.records if not matches(record, query)]
        removed = len(self.records) - len(kept)
        self.records = kept
        return removed

    def add_column(self, column: str, default: str = "") -> None:
        self.columns.append(column)
        for record in self.records:
            record[column] = default

    def delete_column(self, column: str) -> None:
        self.columns.remove(column)
        for record in self.records:
            record.pop(column, None)

    def rename_column(self, old: str, new: str) -> None:
        """Rename a column in place, keeping its position."""
        self.columns[self.columns.index(old)] = new
        self.records = [
            {(new if column == old else column): value for column, value in record.items()}
            for record in self.records
        ]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "columns": list(self.columns),
            "records": [dict(record) for record in self.records],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Table:
        """
        Deserialize from a JSON-compatible dict.

        Records are normalized against the stored columns, so files written
        by other tools still satisfy the record invariant after loading.

        Raises:
            ValueError: If the structure is not a table
        """
        if not isinstance(data, Mapping):
            raise ValueError("Table entry must be an object")

        columns = data.get("columns")
        records = data.get("records", [])
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise ValueError("Table columns must be a list of strings")
        if len(set(columns)) != len(columns):
            raise ValueError("Table columns must be distinct")
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ValueError("Table records must be a list of objects")

        rows = [
            normalize(columns, {k: _cell(v) for k, v in record.items()})
            for record in records
        ]
        return cls(columns=list(columns), records=rows)


def _cell(value: Any) -> str:
    # Older writers stored null for missing cells
    if value is None:
        return ""
    return value if isinstance(value, str) else json.dumps(value)

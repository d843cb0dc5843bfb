"""Tests for the table model: projection, matching and serialization."""

from __future__ import annotations

import pytest

from htdb.db.table import (
    SchemaError,
    Table,
    matches,
    normalize,
    validate_columns,
)


class TestNormalize:
    def test_drops_unknown_and_fills_missing(self):
        assert normalize(["x", "y"], {"x": "1", "extra": "z"}) == {"x": "1", "y": ""}

    def test_follows_column_order(self):
        record = normalize(["b", "a"], {"a": "1", "b": "2"})
        assert list(record) == ["b", "a"]

    def test_empty_record(self):
        assert normalize(["a"], {}) == {"a": ""}


class TestMatches:
    def test_subset_query_matches(self):
        assert matches({"x": "1", "y": "2"}, {"x": "1"})

    def test_different_value_does_not_match(self):
        assert not matches({"x": "1"}, {"x": "2"})

    def test_empty_query_matches_everything(self):
        assert matches({"x": "1"}, {})
        assert matches({}, None)

    def test_all_predicates_must_hold(self):
        assert not matches({"x": "1", "y": "2"}, {"x": "1", "y": "3"})

    def test_unknown_column_does_not_match(self):
        assert not matches({"x": "1"}, {"z": "1"})

    def test_comparison_is_exact(self):
        assert not matches({"x": "10"}, {"x": "1"})
        assert not matches({"x": "Alice"}, {"x": "alice"})


class TestValidateColumns:
    def test_accepts_distinct_names(self):
        assert validate_columns(("id", "name")) == ["id", "name"]

    def test_rejects_duplicates(self):
        with pytest.raises(SchemaError, match='"id" is listed more than once'):
            validate_columns(["id", "id"])

    @pytest.mark.parametrize("columns", [[""], ["a\x00b"], [1]])
    def test_rejects_bad_names(self, columns):
        with pytest.raises(SchemaError):
            validate_columns(columns)

    def test_rejects_bare_string(self):
        with pytest.raises(SchemaError):
            validate_columns("id")


class TestTable:
    @pytest.fixture
    def table(self):
        table = Table(columns=["id", "name"])
        table.append({"id": "1", "name": "Alice"})
        table.append({"id": "2", "name": "Bob"})
        table.append({"id": "3", "name": "Alice"})
        return table

    def test_select_keeps_storage_order(self, table):
        assert [r["id"] for r in table.select({"name": "Alice"})] == ["1", "3"]

    def test_select_returns_copies(self, table):
        table.select()[0]["name"] = "Mallory"
        assert table.records[0]["name"] == "Alice"

    def test_update_merges_patch_into_matches(self, table):
        assert table.update({"name": "Alice"}, {"name": "Carol"}) == 2
        assert [r["name"] for r in table.records] == ["Carol", "Bob", "Carol"]

    def test_update_ignores_undeclared_patch_columns(self, table):
        table.update({"id": "1"}, {"name": "Zed", "age": "40"})
        assert table.records[0] == {"id": "1", "name": "Zed"}

    def test_delete_removes_matches(self, table):
        assert table.delete({"name": "Alice"}) == 2
        assert table.records == [{"id": "2", "name": "Bob"}]

    def test_delete_with_empty_query_removes_all(self, table):
        assert table.delete({}) == 3
        assert table.records == []

    def test_add_and_delete_column(self, table):
        table.add_column("age", "0")
        assert table.columns == ["id", "name", "age"]
        assert all(r["age"] == "0" for r in table.records)
        table.delete_column("age")
        assert all("age" not in r for r in table.records)

    def test_rename_column_keeps_position(self, table):
        table.rename_column("id", "key")
        assert table.columns == ["key", "name"]
        assert list(table.records[0]) == ["key", "name"]
        assert table.records[0]["key"] == "1"


class TestSerialization:
    def test_round_trip(self):
        table = Table(columns=["a", "b"], records=[{"a": "1", "b": "2"}])
        assert Table.from_dict(table.to_dict()) == table

    def test_from_dict_normalizes_records(self):
        table = Table.from_dict({
            "columns": ["a", "b"],
            "records": [{"b": None, "a": "1", "stale": "x"}],
        })
        assert table.records == [{"a": "1", "b": ""}]

    def test_from_dict_stores_json_text_for_other_values(self):
        table = Table.from_dict({
            "columns": ["a", "b", "c"],
            "records": [{"a": True, "b": [1], "c": 3}],
        })
        assert table.records == [{"a": "true", "b": "[1]", "c": "3"}]

    def test_from_dict_defaults_missing_records(self):
        assert Table.from_dict({"columns": ["a"]}).records == []

    @pytest.mark.parametrize("data", [
        [],
        {"records": []},
        {"columns": "a"},
        {"columns": ["a"], "records": ["row"]},
        {"columns": ["a", "a"], "records": []},
    ])
    def test_from_dict_rejects_bad_structure(self, data):
        with pytest.raises(ValueError):
            Table.from_dict(data)

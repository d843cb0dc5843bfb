"""Tests for mutation items and the FIFO mutation queue."""

from __future__ import annotations

import pytest

from htdb.db.mutations import (
    Delete,
    DropAll,
    Insert,
    MutationQueue,
    RenameColumn,
    RenameTable,
    Update,
)
from htdb.db.table import Table, TableMissingError


@pytest.fixture
def tables():
    return {"t": Table(columns=["a", "b"], records=[{"a": "1", "b": "x"}])}


class TestItems:
    def test_insert(self, tables):
        Insert("t", {"a": "2", "c": "dropped"}).apply(tables)
        assert tables["t"].records[-1] == {"a": "2", "b": ""}

    def test_update_reports_count(self, tables):
        assert Update("t", {"a": "1"}, {"b": "y"}).apply(tables) == 1
        assert tables["t"].records == [{"a": "1", "b": "y"}]

    def test_delete_reports_count(self, tables):
        assert Delete("t", {"a": "nope"}).apply(tables) == 0
        assert Delete("t", {"a": "1"}).apply(tables) == 1

    def test_drop_all(self, tables):
        assert DropAll().apply(tables) == 1
        assert tables["t"].records == []
        assert tables["t"].columns == ["a", "b"]

    def test_rename_table(self, tables):
        RenameTable("t", "u").apply(tables)
        assert list(tables) == ["u"]

    def test_rename_column(self, tables):
        RenameColumn("t", "b", "c").apply(tables)
        assert tables["t"].records == [{"a": "1", "c": "x"}]

    def test_missing_table(self, tables):
        with pytest.raises(TableMissingError):
            Insert("ghost", {}).apply(tables)

    def test_items_are_immutable(self):
        item = Insert("t", {"a": "1"})
        with pytest.raises(AttributeError):
            item.table = "other"


class TestQueue:
    def test_drains_in_submission_order(self):
        queue = MutationQueue()
        items = [Insert("t", {"a": str(i)}) for i in range(3)]
        for item in items:
            queue.push(item)

        seen = []
        assert queue.drain(seen.append) == 3
        assert seen == items
        assert len(queue) == 0

    def test_drain_applies_items_to_tables(self, tables):
        queue = MutationQueue()
        queue.push(Insert("t", {"a": "2"}))
        queue.push(Update("t", {"a": "2"}, {"b": "z"}))
        queue.push(Delete("t", {"a": "1"}))
        queue.drain(lambda item: item.apply(tables))
        assert tables["t"].records == [{"a": "2", "b": "z"}]

    def test_failure_discards_remaining_items(self, tables):
        queue = MutationQueue()
        queue.push(Insert("ghost", {}))
        queue.push(Insert("t", {"a": "2"}))

        with pytest.raises(TableMissingError):
            queue.drain(lambda item: item.apply(tables))

        assert len(queue) == 0
        assert len(tables["t"].records) == 1

    def test_items_applied_before_failure_stay_applied(self, tables):
        queue = MutationQueue()
        queue.push(Insert("t", {"a": "2"}))
        queue.push(Insert("ghost", {}))

        with pytest.raises(TableMissingError):
            queue.drain(lambda item: item.apply(tables))

        assert [r["a"] for r in tables["t"].records] == ["1", "2"]

    def test_iteration_is_a_snapshot(self):
        queue = MutationQueue()
        queue.push(DropAll())
        snapshot = list(queue)
        queue.drain(lambda item: None)
        assert snapshot == [DropAll()]

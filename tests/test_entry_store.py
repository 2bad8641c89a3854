"""
Tests for entry persistence and dashboard stats.
"""

from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from services.errors import NotFoundError


def rows(count):
    return [{'n': i} for i in range(count)]


class TestCreateAndGet:
    """Test inserting and fetching entries."""

    def test_create_assigns_id_and_timestamps(self, store, clock):
        entry = store.create(month='march', year=2024, data=rows(2), record_count=2, file_name='a.xlsx')

        assert len(entry.id) == 36
        assert entry.created_at == clock.now
        assert entry.updated_at == clock.now
        assert entry.status == 'active'

    def test_get_returns_stored_rows(self, store):
        entry = store.create(month='march', year=2024, data=[{'a': 'x', 'b': 2}], record_count=1)

        fetched = store.get(entry.id)

        assert fetched.data == [{'a': 'x', 'b': 2}]
        assert fetched.month == 'march'
        assert fetched.year == 2024
        assert fetched.file_name is None

    def test_record_count_is_stored_as_given(self, store):
        entry = store.create(month='may', year=2024, data=rows(3), record_count=10)

        assert store.get(entry.id).record_count == 10

    def test_get_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.get('no-such-id')


class TestCreateMany:
    """Test the single-transaction bulk insert."""

    def test_stores_every_entry(self, store):
        created = store.create_many([
            {'month': 'march', 'year': 2024, 'data': rows(2), 'record_count': 2},
            {'month': 'april', 'year': 2024, 'data': rows(1), 'record_count': 1, 'user_id': 'u-1'},
        ])

        assert [e.month for e in created] == ['march', 'april']
        assert len({e.id for e in created}) == 2
        assert store.stats().total_records == 3

    def test_failed_insert_stores_nothing(self, store):
        with pytest.raises((OverflowError, SQLAlchemyError)):
            store.create_many([
                {'month': 'march', 'year': 2024, 'data': rows(1), 'record_count': 1},
                {'month': 'april', 'year': 2 ** 70, 'data': rows(1), 'record_count': 1},
            ])

        assert store.list() == []


class TestList:
    """Test ordering of list()."""

    def test_newest_first(self, store, clock):
        first = store.create(month='january', year=2024, data=rows(1), record_count=1)
        clock.advance(minutes=5)
        second = store.create(month='february', year=2024, data=rows(1), record_count=1)
        clock.advance(minutes=5)
        third = store.create(month='march', year=2024, data=rows(1), record_count=1)

        assert [e.id for e in store.list()] == [third.id, second.id, first.id]

    def test_ordering_ignores_declared_period(self, store, clock):
        later_period = store.create(month='december', year=2030, data=rows(1), record_count=1)
        clock.advance(seconds=1)
        earlier_period = store.create(month='january', year=1990, data=rows(1), record_count=1)

        assert [e.id for e in store.list()] == [earlier_period.id, later_period.id]

    def test_ties_are_broken_by_id(self, store):
        ids = [store.create(month='march', year=2024, data=rows(1), record_count=1).id for _ in range(4)]

        assert [e.id for e in store.list()] == sorted(ids, reverse=True)

    def test_empty(self, store):
        assert store.list() == []


class TestDelete:
    """Test deletion."""

    def test_delete_then_get(self, store):
        entry = store.create(month='march', year=2024, data=rows(1), record_count=1)

        store.delete(entry.id)

        with pytest.raises(NotFoundError):
            store.get(entry.id)

    def test_delete_unknown_has_no_side_effects(self, store):
        entry = store.create(month='march', year=2024, data=rows(1), record_count=1)

        with pytest.raises(NotFoundError):
            store.delete('no-such-id')

        assert [e.id for e in store.list()] == [entry.id]


class TestStats:
    """Test dashboard counters."""

    def test_empty_store(self, store):
        stats = store.stats()

        assert (stats.total_files, stats.total_records, stats.this_month) == (0, 0, 0)

    def test_two_entries_this_month(self, store):
        store.create(month='march', year=2024, data=rows(5), record_count=5)
        store.create(month='march', year=2024, data=rows(3), record_count=3)

        stats = store.stats()

        assert stats.this_month == 2
        assert stats.total_files == 2
        assert stats.total_records == 8
        assert stats.to_dict() == {'totalFiles': 2, 'totalRecords': 8, 'thisMonth': 2}

    def test_this_month_uses_creation_time(self, store, clock):
        clock.now = datetime(2025, 2, 28, 23, 59, 59)
        store.create(month='march', year=2025, data=rows(1), record_count=1)
        clock.now = datetime(2025, 3, 1, 0, 0, 0)
        store.create(month='february', year=2025, data=rows(1), record_count=1)

        stats = store.stats()

        assert stats.this_month == 1
        assert stats.total_files == 2

    def test_december_rollover(self, store, clock):
        clock.now = datetime(2024, 12, 31, 12, 0, 0)
        store.create(month='december', year=2024, data=rows(2), record_count=2)
        clock.now = datetime(2025, 1, 1, 0, 0, 0)
        store.create(month='january', year=2025, data=rows(2), record_count=2)

        clock.now = datetime(2024, 12, 31, 23, 0, 0)
        assert store.stats().this_month == 1

    def test_total_records_sums_declared_counts(self, store):
        store.create(month='march', year=2024, data=rows(1), record_count=7)

        assert store.stats().total_records == 7

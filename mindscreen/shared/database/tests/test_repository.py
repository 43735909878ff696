"""Tests for base repository pattern."""
import pytest
from unittest.mock import MagicMock
from dataclasses import dataclass
from typing import Any, Dict

from mindscreen.shared.database.connection import ConnectionManager, DatabaseConfig
from mindscreen.shared.database.repository import (
    BaseRepository,
    RepositoryError,
    DuplicateError,
)


@dataclass
class Widget:
    """Entity used to exercise the repository."""
    id: str
    name: str
    value: int


class WidgetRepository(BaseRepository[Widget]):
    """Concrete repository for testing."""

    columns = ("id", "name", "value")

    def _row_to_entity(self, row: tuple) -> Widget:
        return Widget(id=row[0], name=row[1], value=row[2])

    def _entity_to_params(self, entity: Widget) -> Dict[str, Any]:
        return {"id": entity.id, "name": entity.name, "value": entity.value}


@pytest.fixture
def cursor():
    cur = MagicMock()
    cur.__enter__.return_value = cur
    return cur


@pytest.fixture
def connection(cursor):
    conn = MagicMock()
    conn.cursor.return_value = cursor
    return conn


@pytest.fixture
def repository(connection):
    manager = ConnectionManager(DatabaseConfig(host="localhost"))
    manager._pool = MagicMock()
    manager._pool.getconn.return_value = connection
    return WidgetRepository(manager, "widgets")


class TestRepositoryExceptions:
    """Tests for repository exception classes."""

    def test_repository_error(self):
        error = RepositoryError("Test error")
        assert str(error) == "Test error"

    def test_duplicate_error(self):
        assert isinstance(DuplicateError("dup"), RepositoryError)


class TestBaseRepository:
    """Tests for BaseRepository SQL construction and mapping."""

    def test_initialization(self, repository):
        assert repository.table_name == "widgets"

    def test_insert_returns_stored_entity(self, repository, connection, cursor):
        cursor.fetchone.return_value = ("w1", "gear", 3)

        stored = repository.insert(Widget(id="w1", name="gear", value=3))

        query, params = cursor.execute.call_args.args
        assert query.startswith("INSERT INTO widgets (id, name, value)")
        assert "RETURNING id, name, value" in query
        assert params == ["w1", "gear", 3]
        connection.commit.assert_called_once()
        assert stored == Widget(id="w1", name="gear", value=3)

    def test_insert_without_returned_row_fails(self, repository, cursor):
        cursor.fetchone.return_value = None

        with pytest.raises(RepositoryError):
            repository.insert(Widget(id="w1", name="gear", value=3))

    def test_insert_unique_violation_raises_duplicate(self, repository, cursor):
        error = Exception("duplicate key")
        error.pgcode = "23505"
        cursor.execute.side_effect = error

        with pytest.raises(DuplicateError):
            repository.insert(Widget(id="w1", name="gear", value=3))

    def test_insert_database_error_wrapped(self, repository, connection, cursor):
        cursor.execute.side_effect = RuntimeError("disk full")

        with pytest.raises(RepositoryError):
            repository.insert(Widget(id="w1", name="gear", value=3))
        connection.rollback.assert_called_once()

    def test_find_one_applies_filters(self, repository, cursor):
        cursor.fetchone.return_value = ("w1", "gear", 3)

        found = repository.find_one({"id": "w1", "name": "gear"})

        query, params = cursor.execute.call_args.args
        assert query == "SELECT id, name, value FROM widgets WHERE id = %s AND name = %s LIMIT 1"
        assert params == ["w1", "gear"]
        assert found.value == 3

    def test_find_one_returns_none(self, repository, cursor):
        cursor.fetchone.return_value = None

        assert repository.find_one({"id": "missing"}) is None

    def test_find_where_orders_and_paginates(self, repository, cursor):
        cursor.fetchall.return_value = [("w2", "b", 2), ("w1", "a", 1)]

        found = repository.find_where({"name": "a"}, limit=5, offset=10)

        query, params = cursor.execute.call_args.args
        assert "ORDER BY created_at DESC LIMIT %s OFFSET %s" in query
        assert params == ["a", 5, 10]
        assert [w.id for w in found] == ["w2", "w1"]

    def test_find_where_without_limit(self, repository, cursor):
        cursor.fetchall.return_value = []

        assert repository.find_where({}) == []
        query, params = cursor.execute.call_args.args
        assert query == "SELECT id, name, value FROM widgets ORDER BY created_at DESC"
        assert params == []

    def test_query_failure_wrapped(self, repository, cursor):
        cursor.execute.side_effect = RuntimeError("timeout")

        with pytest.raises(RepositoryError):
            repository.find_where({})

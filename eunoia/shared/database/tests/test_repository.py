"""Tests for base repository pattern."""
import pytest
from unittest.mock import MagicMock
from dataclasses import dataclass

from eunoia.shared.database.connection import ConnectionManager
from eunoia.shared.database.repository import (
    BaseRepository,
    RepositoryError,
    NotFoundError,
    DuplicateError,
)


@dataclass
class Widget:
    id: int
    name: str
    value: int


class WidgetRepository(BaseRepository[Widget]):
    columns = ("id", "name", "value")

    def _row_to_entity(self, row: tuple) -> Widget:
        return Widget(id=row[0], name=row[1], value=row[2])


class UniqueViolation(Exception):
    """Stands in for psycopg2.errors.UniqueViolation by class name."""


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def connection(cursor):
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


@pytest.fixture
def repository(connection):
    manager = MagicMock(spec=ConnectionManager)
    manager.get_connection.return_value.__enter__.return_value = connection
    return WidgetRepository(manager, "widgets")


class TestRepositoryExceptions:

    def test_not_found_error(self):
        assert isinstance(NotFoundError("missing"), RepositoryError)

    def test_duplicate_error(self):
        assert isinstance(DuplicateError("dup"), RepositoryError)


class TestInsert:

    def test_insert_returns_entity(self, repository, connection, cursor):
        cursor.fetchone.return_value = (7, "gear", 3)

        widget = repository.insert({"name": "gear", "value": 3})

        assert widget == Widget(id=7, name="gear", value=3)
        query, params = cursor.execute.call_args.args
        assert query.startswith("INSERT INTO widgets (name, value)")
        assert "RETURNING id, name, value" in query
        assert params == ("gear", 3)
        connection.commit.assert_called_once()

    def test_insert_failure_rolls_back(self, repository, connection, cursor):
        cursor.execute.side_effect = RuntimeError("disk full")

        with pytest.raises(RepositoryError):
            repository.insert({"name": "gear", "value": 3})

        connection.rollback.assert_called_once()
        connection.commit.assert_not_called()

    def test_insert_unique_violation(self, repository, cursor):
        cursor.execute.side_effect = UniqueViolation("duplicate key")

        with pytest.raises(DuplicateError):
            repository.insert({"name": "gear", "value": 3})

    def test_insert_without_row(self, repository, cursor):
        cursor.fetchone.return_value = None

        with pytest.raises(RepositoryError):
            repository.insert({"name": "gear", "value": 3})


class TestSelect:

    def test_find_by_id(self, repository, cursor):
        cursor.fetchall.return_value = [(1, "a", 10)]

        assert repository.find_by_id(1) == Widget(1, "a", 10)
        query, params = cursor.execute.call_args.args
        assert "WHERE id = %s" in query
        assert params == (1,)

    def test_find_by_id_missing(self, repository, cursor):
        cursor.fetchall.return_value = []

        assert repository.find_by_id(99) is None

    def test_find_by_orders(self, repository, cursor):
        cursor.fetchall.return_value = [(1, "a", 10), (2, "a", 20)]

        widgets = repository.find_by("name", "a", order_by="value ASC")

        assert [w.id for w in widgets] == [1, 2]
        query = cursor.execute.call_args.args[0]
        assert "WHERE name = %s ORDER BY value ASC" in query

    def test_find_by_rejects_unknown_column(self, repository):
        with pytest.raises(ValueError):
            repository.find_by("name; DROP TABLE widgets", "a")

    def test_count(self, repository, cursor):
        cursor.fetchall.return_value = [(5,)]

        assert repository.count() == 5

    def test_query_failure_wrapped(self, repository, cursor):
        cursor.execute.side_effect = RuntimeError("timeout")

        with pytest.raises(RepositoryError):
            repository.find_by_id(1)

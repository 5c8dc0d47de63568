"""Base repository for PostgreSQL-backed stores.

Repositories here are append-oriented: rows are inserted and read back,
and the crisis audit trail in particular is never updated or deleted.
Driver exceptions are wrapped in RepositoryError so callers do not depend
on psycopg2 types.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class NotFoundError(RepositoryError):
    """Entity not found in database."""
    pass


class DuplicateError(RepositoryError):
    """Duplicate entity already exists."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common operations.

    Subclasses declare their column list and row conversion; SELECT
    statements always read columns in that order.
    """

    columns: Sequence[str] = ()

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert a database row (in `columns` order) to an entity."""
        pass

    @property
    def _select_list(self) -> str:
        return ", ".join(self.columns)

    def insert(self, params: Dict[str, Any]) -> T:
        """Insert a row and return the stored entity.

        Args:
            params: Column names to values (server-assigned columns omitted)

        Returns:
            Entity built from the RETURNING row

        Raises:
            DuplicateError: On a unique constraint violation
            RepositoryError: On any other database failure
        """
        names = list(params.keys())
        placeholders = ", ".join(["%s"] * len(names))
        query = (
            f"INSERT INTO {self.table_name} ({', '.join(names)}) "
            f"VALUES ({placeholders}) RETURNING {self._select_list}"
        )

        try:
            with self.connection_manager.get_connection() as conn:
                try:
                    with conn.cursor() as cur:
                        cur.execute(query, tuple(params.values()))
                        row = cur.fetchone()
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except Exception as e:
            if type(e).__name__ == "UniqueViolation":
                raise DuplicateError(str(e)) from e
            logger.error(
                "REPOSITORY_INSERT_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Insert into {self.table_name} failed: {e}") from e

        if row is None:
            raise RepositoryError(f"Insert into {self.table_name} returned no row")
        return self._row_to_entity(row)

    def find_by_id(self, entity_id: int) -> Optional[T]:
        """Find entity by primary key, or None."""
        rows = self._select(
            f"SELECT {self._select_list} FROM {self.table_name} WHERE id = %s",
            (entity_id,),
        )
        return self._row_to_entity(rows[0]) if rows else None

    def find_by(
        self,
        column: str,
        value: Any,
        order_by: str = "id ASC",
    ) -> List[T]:
        """Find all entities where `column` equals `value`, ordered."""
        if column not in self.columns:
            raise ValueError(f"Unknown column for {self.table_name}: {column}")
        rows = self._select(
            f"SELECT {self._select_list} FROM {self.table_name} "
            f"WHERE {column} = %s ORDER BY {order_by}",
            (value,),
        )
        return [self._row_to_entity(row) for row in rows]

    def count(self) -> int:
        rows = self._select(f"SELECT COUNT(*) FROM {self.table_name}", ())
        return rows[0][0] if rows else 0

    def _execute(self, query: str, params: tuple) -> Optional[tuple]:
        """Run a write statement, returning its first row if any."""
        try:
            with self.connection_manager.get_connection() as conn:
                try:
                    with conn.cursor() as cur:
                        cur.execute(query, params)
                        row = cur.fetchone() if cur.description else None
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except Exception as e:
            logger.error(
                "REPOSITORY_WRITE_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Write to {self.table_name} failed: {e}") from e
        return row

    def _select(self, query: str, params: tuple) -> List[tuple]:
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return list(cur.fetchall())
        except Exception as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Query on {self.table_name} failed: {e}") from e

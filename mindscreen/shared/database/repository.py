"""Base repository pattern for PostgreSQL tables.

Subclasses declare their table, column order and row/entity mapping;
the base class owns SQL construction, connection handling and error
translation into RepositoryError.
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


class DuplicateError(RepositoryError):
    """Duplicate entity already exists."""
    pass


class BaseRepository(ABC, Generic[T]):
    """Insert-and-query repository over a single table.

    Rows are always selected with the explicit column list, so
    _row_to_entity receives values in `columns` order.
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

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Convert an entity to column/value pairs for INSERT."""

    def _select_clause(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table_name}"

    @staticmethod
    def _where_clause(filters: Dict[str, Any]) -> str:
        if not filters:
            return ""
        return " WHERE " + " AND ".join(f"{column} = %s" for column in filters)

    def insert(self, entity: T) -> T:
        """Insert an entity and return it as stored.

        Raises:
            DuplicateError: On unique constraint violation
            RepositoryError: On any other database failure
        """
        params = self._entity_to_params(entity)
        column_names = list(params.keys())
        placeholders = ", ".join(["%s"] * len(column_names))

        query = (
            f"INSERT INTO {self.table_name} ({', '.join(column_names)}) "
            f"VALUES ({placeholders}) "
            f"RETURNING {', '.join(self.columns)}"
        )

        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, list(params.values()))
                    row = cur.fetchone()
                conn.commit()
        except Exception as e:
            logger.error(
                "REPOSITORY_INSERT_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            if getattr(e, "pgcode", None) == "23505":
                raise DuplicateError(f"Duplicate row in {self.table_name}") from e
            raise RepositoryError(f"Failed to insert into {self.table_name}: {e}") from e

        if row is None:
            raise RepositoryError(f"Insert into {self.table_name} returned no row")
        return self._row_to_entity(row)

    def find_one(self, filters: Dict[str, Any]) -> Optional[T]:
        """Find a single entity matching all equality filters."""
        query = self._select_clause() + self._where_clause(filters) + " LIMIT 1"

        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, list(filters.values()))
                    row = cur.fetchone()
        except Exception as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Failed to query {self.table_name}: {e}") from e

        if row is None:
            return None
        return self._row_to_entity(row)

    def find_where(
        self,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[T]:
        """Find entities matching all filters, newest first."""
        query = self._select_clause() + self._where_clause(filters) + " ORDER BY created_at DESC"
        params: List[Any] = list(filters.values())

        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        if offset:
            query += " OFFSET %s"
            params.append(offset)

        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except Exception as e:
            logger.error(
                "REPOSITORY_QUERY_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise RepositoryError(f"Failed to query {self.table_name}: {e}") from e

        return [self._row_to_entity(row) for row in rows]

"""Abstract DatabaseService interface."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from datastore.types import Params, ParamsList


class DatabaseService(ABC):
    """Database-agnostic interface for the SQL the storages and state stores run.

    - Stateless: no mutable state beyond the connection pool
    - Thread-safe: each transaction() acquires its own connection
    - DB-agnostic: callers program against this ABC, never a concrete backend
    """

    #: Parameter marker understood by the backend's DB-API driver.
    placeholder: str = "?"

    @property
    @abstractmethod
    def url(self) -> str:
        """Connection URL this service was created from."""

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_many(self, sql: str, params_list: ParamsList) -> None:
        """Execute a SQL statement for each parameter set."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, DROP TABLE, etc.)."""

    def batch_insert(self, table: str, columns: list[str], rows: list[tuple]) -> None:
        """Insert multiple rows into a table."""
        if not rows:
            return
        cols = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join(self.placeholder for _ in columns)
        sql = f"INSERT INTO {quote_identifier(table)} ({cols}) VALUES ({placeholders})"
        self.execute_many(sql, rows)

    def upsert(
        self,
        table: str,
        columns: list[str],
        rows: list[tuple],
        conflict_columns: list[str],
    ) -> None:
        """Insert rows, updating on conflict with the specified columns."""
        if not rows:
            return
        cols = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join(self.placeholder for _ in columns)
        conflict_cols = ", ".join(quote_identifier(c) for c in conflict_columns)
        update_cols = [c for c in columns if c not in conflict_columns]
        update_clause = ", ".join(
            f"{quote_identifier(c)} = excluded.{quote_identifier(c)}" for c in update_cols
        )

        if update_cols:
            sql = (
                f"INSERT INTO {quote_identifier(table)} ({cols}) VALUES ({placeholders}) "
                f"ON CONFLICT ({conflict_cols}) DO UPDATE SET {update_clause}"
            )
        else:
            sql = (
                f"INSERT INTO {quote_identifier(table)} ({cols}) VALUES ({placeholders}) "
                f"ON CONFLICT ({conflict_cols}) DO NOTHING"
            )
        self.execute_many(sql, rows)


def quote_identifier(name: str) -> str:
    """Quote a table or column name for both SQLite and PostgreSQL."""
    return '"' + name.replace('"', '""') + '"'

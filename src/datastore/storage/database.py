"""Storage backed by a SQL table through a DatabaseService."""

import json
import logging
import re
from typing import Any, Iterable

from datastore.db.service import DatabaseService, quote_identifier
from datastore.exceptions import ConfigurationError
from datastore.storage.base import StorageInterface
from datastore.types import Row, Schema

logger = logging.getLogger(__name__)

SCHEMA_TABLE = "datastore_schemas"
SCHEMA_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS datastore_schemas (
    table_name    VARCHAR(255) NOT NULL PRIMARY KEY,
    fields        TEXT         NOT NULL
);
"""
SCHEMA_COLUMNS = ["table_name", "fields"]
SCHEMA_CONFLICT_COLUMNS = ["table_name"]

# Sanitized field names never start with an underscore, so this cannot clash.
ROW_ID_COLUMN = "_row_id"

SQL_TYPES = {"text": "TEXT"}

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class DatabaseStorage(StorageInterface):
    """One table per import task, plus a shared table holding each task's schema.

    Rows are stored as text in schema column order under an increasing
    ``_row_id``. Every ``store_many`` call is a single transaction.
    """

    def __init__(self, service: DatabaseService, table: str, owns_service: bool = False):
        if not _TABLE_NAME.match(table):
            raise ConfigurationError(f"Invalid table name: {table!r}")
        self._service = service
        self._table = table
        self._owns_service = owns_service
        self._columns: list[str] | None = None
        self._bootstrapped = False

    @property
    def table(self) -> str:
        return self._table

    def _bootstrap(self) -> None:
        if not self._bootstrapped:
            self._service.execute_ddl(SCHEMA_TABLE_DDL)
            self._bootstrapped = True

    def _require_columns(self) -> list[str]:
        if self._columns is None:
            schema = self.get_schema()
            if schema is None:
                raise RuntimeError(f"No schema set for table {self._table}")
            self._columns = list(schema)
        return self._columns

    def get_schema(self) -> Schema | None:
        self._bootstrap()
        ph = self._service.placeholder
        with self._service.transaction():
            rows = self._service.execute(
                f"SELECT fields FROM {SCHEMA_TABLE} WHERE table_name = {ph}", (self._table,)
            )
        if not rows:
            return None
        return json.loads(rows[0]["fields"])

    def set_schema(self, schema: Schema) -> None:
        self._bootstrap()
        columns = ", ".join(
            f"{quote_identifier(name)} {SQL_TYPES.get(field_type, 'TEXT')}"
            for name, field_type in schema.items()
        )
        self._service.execute_ddl(
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(self._table)} "
            f"({quote_identifier(ROW_ID_COLUMN)} INTEGER PRIMARY KEY, {columns})"
        )
        with self._service.transaction():
            self._service.upsert(
                SCHEMA_TABLE,
                SCHEMA_COLUMNS,
                [(self._table, json.dumps(schema))],
                SCHEMA_CONFLICT_COLUMNS,
            )
        self._columns = list(schema)
        logger.info("Created table %s with %d columns", self._table, len(schema))

    def store(self, row: Row) -> None:
        self.store_many([row])

    def store_many(self, rows: Iterable[Row]) -> None:
        rows = [list(row) for row in rows]
        if not rows:
            return
        columns = self._require_columns()
        row_id = quote_identifier(ROW_ID_COLUMN)
        with self._service.transaction():
            last = self._service.execute(
                f"SELECT COALESCE(MAX({row_id}), 0) AS last_id FROM {quote_identifier(self._table)}"
            )
            start = int(last[0]["last_id"]) + 1
            self._service.batch_insert(
                self._table,
                [ROW_ID_COLUMN, *columns],
                [(start + i, *row) for i, row in enumerate(rows)],
            )

    def count(self) -> int:
        if self.get_schema() is None:
            return 0
        with self._service.transaction():
            rows = self._service.execute(
                f"SELECT COUNT(*) AS cnt FROM {quote_identifier(self._table)}"
            )
        return int(rows[0]["cnt"])

    def retrieve_all(self) -> dict[int, Row]:
        if self.get_schema() is None:
            return {}
        columns = self._require_columns()
        row_id = quote_identifier(ROW_ID_COLUMN)
        with self._service.transaction():
            rows = self._service.execute(
                f"SELECT * FROM {quote_identifier(self._table)} ORDER BY {row_id}"
            )
        return {int(r[ROW_ID_COLUMN]): [r[c] for c in columns] for r in rows}

    def drop(self) -> None:
        self._bootstrap()
        self._service.execute_ddl(f"DROP TABLE IF EXISTS {quote_identifier(self._table)}")
        ph = self._service.placeholder
        with self._service.transaction():
            self._service.execute(
                f"DELETE FROM {SCHEMA_TABLE} WHERE table_name = {ph}", (self._table,)
            )
        self._columns = None
        logger.info("Dropped table %s", self._table)

    def config(self) -> dict[str, Any]:
        return {"backend": "database", "db_url": self._service.url, "table": self._table}

    def close(self) -> None:
        """Close the underlying service if this storage created it."""
        if self._owns_service:
            self._service.close()

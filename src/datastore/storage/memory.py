"""In-process storage, mainly for tests and one-shot imports."""

from typing import Any

from datastore.storage.base import StorageInterface
from datastore.types import Row, Schema


class MemoryStorage(StorageInterface):
    """Keeps rows in an insertion-ordered dict. Not shared across processes."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self._schema: Schema | None = None
        self._rows: dict[int, Row] = {}
        self._next_id = 1

    def get_schema(self) -> Schema | None:
        return dict(self._schema) if self._schema is not None else None

    def set_schema(self, schema: Schema) -> None:
        self._schema = dict(schema)

    def store(self, row: Row) -> None:
        self._rows[self._next_id] = list(row)
        self._next_id += 1

    def count(self) -> int:
        return len(self._rows)

    def retrieve_all(self) -> dict[int, Row]:
        return {row_id: list(row) for row_id, row in self._rows.items()}

    def drop(self) -> None:
        self._schema = None
        self._rows.clear()
        self._next_id = 1

    def config(self) -> dict[str, Any]:
        return {"backend": "memory", "name": self.name}

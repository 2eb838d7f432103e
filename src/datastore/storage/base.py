"""Storage port: where imported rows and their schema are persisted."""

from abc import ABC, abstractmethod
from typing import Any, Iterable

from datastore.exceptions import ConfigurationError
from datastore.types import Row, Schema

REQUIRED_OPERATIONS = ("get_schema", "set_schema", "store", "count", "retrieve_all", "drop")


class StorageInterface(ABC):
    """Capability contract the importer needs from a storage backend.

    One storage instance holds the rows of one import task. ``count()`` must
    reflect committed rows exactly: the importer resumes from it.
    """

    @abstractmethod
    def get_schema(self) -> Schema | None:
        """Return the persisted schema, or None before one is set."""

    @abstractmethod
    def set_schema(self, schema: Schema) -> None:
        """Persist the schema, creating whatever structure rows need."""

    @abstractmethod
    def store(self, row: Row) -> None:
        """Append one row."""

    @abstractmethod
    def count(self) -> int:
        """Number of rows stored."""

    @abstractmethod
    def retrieve_all(self) -> dict[int, Row]:
        """All rows keyed by row id, in insertion order."""

    @abstractmethod
    def drop(self) -> None:
        """Remove all rows and the schema."""

    def store_many(self, rows: Iterable[Row]) -> None:
        """Append rows in order. Backends override this to write a batch at once."""
        for row in rows:
            self.store(row)

    def config(self) -> dict[str, Any] | None:
        """Reference from which an equivalent storage can be re-created, if any."""
        return None


def check_storage(storage: object) -> None:
    """Reject objects that do not provide every required storage operation."""
    missing = [name for name in REQUIRED_OPERATIONS if not callable(getattr(storage, name, None))]
    if missing:
        raise ConfigurationError(
            f"Storage must implement {StorageInterface.__module__}.{StorageInterface.__name__}; "
            f"{type(storage).__name__} is missing: {', '.join(missing)}"
        )

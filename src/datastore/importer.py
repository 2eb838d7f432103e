"""Resumable, time-boxed import of a tabular resource into a storage.

An ImportTask runs in passes. Each ``run()`` opens a fresh row stream,
skips the rows already committed, and appends the rest until the stream
ends (DONE) or the time limit is reached (STOPPED). Between passes the task
can be serialized, stored, and rebuilt in another process.

Only one task may run against a given storage at a time; the cursor
assumes it is the sole writer.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from itertools import islice
from typing import Any

from datastore.exceptions import (
    ConfigurationError,
    InvalidContentError,
    RowSourceError,
    StateError,
)
from datastore.parser import (
    CsvRowSourceFactory,
    RowSourceFactory,
    check_row_source_factory,
    resolve_row_source,
)
from datastore.resource import Resource
from datastore.result import Result, Status
from datastore.schema import build_schema
from datastore.state import StateStore
from datastore.storage import StorageInterface, check_storage, resolve_storage
from datastore.timing import Clock, TimeBudget
from datastore.types import Row, Schema

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500

STATE_FIELDS = (
    "resource_id",
    "resource_location",
    "resource_media_type",
    "storage_config",
    "row_source_config",
    "time_limit",
    "status",
    "error_message",
    "cursor",
)


def _validate_time_limit(time_limit: Any) -> float | None:
    if time_limit is None:
        return None
    if isinstance(time_limit, bool) or not isinstance(time_limit, (int, float)) or time_limit <= 0:
        raise ConfigurationError(
            f"time_limit must be a positive number of seconds or None, got {time_limit!r}"
        )
    return time_limit


@dataclass
class ImportConfig:
    """Everything an ImportTask is built from. Validated on construction."""

    resource: Resource
    storage: StorageInterface
    row_source_factory: RowSourceFactory = field(default_factory=CsvRowSourceFactory)
    time_limit: float | None = None
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        if not isinstance(self.resource, Resource):
            raise ConfigurationError(
                f"resource must be a Resource, got {type(self.resource).__name__}"
            )
        check_storage(self.storage)
        check_row_source_factory(self.row_source_factory)
        _validate_time_limit(self.time_limit)
        batch_size = self.batch_size
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
            raise ConfigurationError(f"batch_size must be a positive integer, got {batch_size!r}")


class ImportTask:
    """Imports one resource into one storage across one or more passes."""

    def __init__(self, config: ImportConfig, clock: Clock = time.monotonic):
        if not isinstance(config, ImportConfig):
            raise ConfigurationError(f"config must be an ImportConfig, got {type(config).__name__}")
        self._resource = config.resource
        self._storage = config.storage
        self._row_source_factory = config.row_source_factory
        self._time_limit = config.time_limit
        self._batch_size = config.batch_size
        self._clock = clock
        self._result = Result.stopped()
        self._cursor = 0
        self._identifier: str | None = None
        self._state_store: StateStore | None = None

    @property
    def resource(self) -> Resource:
        return self._resource

    @property
    def storage(self) -> StorageInterface:
        return self._storage

    @property
    def row_source_factory(self) -> RowSourceFactory:
        return self._row_source_factory

    @property
    def result(self) -> Result:
        return self._result

    @property
    def cursor(self) -> int:
        """Rows of the resource already committed to storage."""
        return self._cursor

    @property
    def time_limit(self) -> float | None:
        return self._time_limit

    @time_limit.setter
    def time_limit(self, value: float | None) -> None:
        self._time_limit = _validate_time_limit(value)

    def run(self) -> Result:
        """Run one pass and return the resulting status.

        DONE and ERROR are terminal: running again changes nothing. Row
        source failures end in ERROR with the storage emptied, including
        rows committed before the failure was found mid-stream. Any other
        exception propagates with the task left STOPPED at the last
        committed row.
        """
        if self._result.is_terminal:
            logger.info(
                "Resource %s is already %s; nothing to import",
                self._resource.id,
                self._result.status.value,
            )
            return self._result

        budget = TimeBudget(self._time_limit, self._clock)
        budget.start()
        try:
            try:
                self._result = self._run_pass(budget)
            except RowSourceError as e:
                logger.error("Import of resource %s failed: %s", self._resource.id, e)
                self._discard_rows()
                self._result = Result.error(str(e))
        except Exception:
            self._result = Result.stopped()
            raise
        finally:
            self._save()

        logger.info(
            "Pass over resource %s finished %s: %d rows stored (%.2fs)",
            self._resource.id,
            self._result.status.value,
            self._cursor,
            budget.elapsed,
        )
        return self._result

    def _run_pass(self, budget: TimeBudget) -> Result:
        rows = self._row_source_factory.open(self._resource)
        try:
            try:
                header = next(rows)
            except StopIteration:
                raise InvalidContentError(self._resource.location, "no header row") from None

            schema = self._ensure_schema(header)
            self._result = Result.in_progress()
            self._reconcile_cursor()

            skipped = sum(1 for _ in islice(rows, self._cursor))
            if skipped < self._cursor:
                raise InvalidContentError(
                    self._resource.location,
                    f"{skipped} data rows, fewer than the {self._cursor} already imported",
                )

            width = len(schema)
            batch: list[Row] = []
            for row in rows:
                batch.append(self._fit(row, width, self._cursor + len(batch) + 1))
                if len(batch) >= self._batch_size:
                    self._flush(batch)
                if budget.exhausted():
                    self._flush(batch)
                    logger.info(
                        "Time limit of %ss reached for resource %s at row %d",
                        self._time_limit,
                        self._resource.id,
                        self._cursor,
                    )
                    return Result.stopped()
            self._flush(batch)
            return Result.done()
        finally:
            close = getattr(rows, "close", None)
            if callable(close):
                close()

    def _discard_rows(self) -> None:
        stored = self._storage.count()
        if stored:
            logger.warning(
                "Discarding %d stored rows of failed resource %s", stored, self._resource.id
            )
            self._storage.drop()
        self._cursor = 0

    def _ensure_schema(self, header: Row) -> Schema:
        schema = self._storage.get_schema()
        if schema is None:
            schema = build_schema(header)
            self._storage.set_schema(schema)
            logger.info("Schema for resource %s: %s", self._resource.id, ", ".join(schema))
        return schema

    def _reconcile_cursor(self) -> None:
        stored = self._storage.count()
        if stored != self._cursor:
            logger.warning(
                "Cursor %d for resource %s disagrees with %d stored rows; resuming from storage",
                self._cursor,
                self._resource.id,
                stored,
            )
            self._cursor = stored

    def _fit(self, row: Row, width: int, row_number: int) -> Row:
        """Pad short rows; drop blank trailing cells. Other extra cells are invalid."""
        if len(row) < width:
            return row + [""] * (width - len(row))
        if len(row) > width:
            if any(cell.strip() for cell in row[width:]):
                raise InvalidContentError(
                    self._resource.location,
                    f"data row {row_number} has {len(row)} fields, expected {width}",
                )
            return row[:width]
        return row

    def _flush(self, batch: list[Row]) -> None:
        if not batch:
            return
        store_many = getattr(self._storage, "store_many", None)
        if callable(store_many):
            store_many(batch)
        else:
            for row in batch:
                self._storage.store(row)
        self._cursor += len(batch)
        logger.debug(
            "Stored %d rows for resource %s (total %d)", len(batch), self._resource.id, self._cursor
        )
        batch.clear()

    def drop(self) -> None:
        """Remove everything imported so far and return to the initial state."""
        self._storage.drop()
        self._cursor = 0
        self._result = Result.stopped()
        self._save()
        logger.info("Dropped import of resource %s", self._resource.id)

    def serialize(self) -> str:
        """JSON document of the task's configuration references and progress."""
        storage_config = getattr(self._storage, "config", None)
        source_config = getattr(self._row_source_factory, "config", None)
        return json.dumps(
            {
                "resource_id": self._resource.id,
                "resource_location": self._resource.location,
                "resource_media_type": self._resource.media_type,
                "storage_config": storage_config() if callable(storage_config) else None,
                "row_source_config": source_config() if callable(source_config) else None,
                "time_limit": self._time_limit,
                "batch_size": self._batch_size,
                "status": self._result.status.value,
                "error_message": self._result.error_message,
                "cursor": self._cursor,
            }
        )

    @classmethod
    def deserialize(
        cls,
        state: str | bytes | dict[str, Any],
        storage: StorageInterface | None = None,
        row_source_factory: RowSourceFactory | None = None,
        clock: Clock = time.monotonic,
    ) -> "ImportTask":
        """Rebuild a task from ``serialize()`` output.

        Collaborators are live objects and are not part of the document:
        pass them in, or they are re-created from the stored references.
        """
        if isinstance(state, dict):
            doc = state
        else:
            try:
                doc = json.loads(state)
            except ValueError as e:
                raise StateError(f"Import state is not valid JSON: {e}") from e
        if not isinstance(doc, dict):
            raise StateError("Import state must be a JSON object")
        missing = [name for name in STATE_FIELDS if name not in doc]
        if missing:
            raise StateError(f"Import state is missing fields: {', '.join(missing)}")

        try:
            result = Result(Status(doc["status"]), doc["error_message"])
            time_limit = _validate_time_limit(doc["time_limit"])
        except (TypeError, ValueError, ConfigurationError) as e:
            raise StateError(f"Invalid import state: {e}") from e
        cursor = doc["cursor"]
        if isinstance(cursor, bool) or not isinstance(cursor, int) or cursor < 0:
            raise StateError(f"Invalid import state: bad cursor {cursor!r}")

        resource = Resource(
            doc["resource_id"], doc["resource_location"], doc["resource_media_type"]
        )
        if storage is None:
            storage = resolve_storage(doc["storage_config"])
        if row_source_factory is None:
            row_source_factory = resolve_row_source(doc["row_source_config"])
        config = ImportConfig(
            resource=resource,
            storage=storage,
            row_source_factory=row_source_factory,
            time_limit=time_limit,
            batch_size=doc.get("batch_size", DEFAULT_BATCH_SIZE),
        )
        task = cls(config, clock=clock)
        task._result = result
        task._cursor = cursor
        return task

    @classmethod
    def get(
        cls,
        identifier: str,
        state_store: StateStore,
        config: ImportConfig,
        clock: Clock = time.monotonic,
    ) -> "ImportTask":
        """Load the task stored under ``identifier``, or start a new one.

        ``config`` supplies the resource, collaborators and limits; the store
        supplies status and cursor. The returned task writes its state back
        to the store after every ``run()`` and ``drop()``.
        """
        task = cls(config, clock=clock)
        state = state_store.retrieve(identifier)
        if state is not None:
            stored = cls.deserialize(
                state,
                storage=config.storage,
                row_source_factory=config.row_source_factory,
                clock=clock,
            )
            task._result = stored.result
            task._cursor = stored.cursor
            logger.debug(
                "Loaded job %s: %s at row %d", identifier, task._result.status.value, task._cursor
            )
        task._identifier = identifier
        task._state_store = state_store
        return task

    def _save(self) -> None:
        if self._state_store is not None and self._identifier is not None:
            self._state_store.store(self._identifier, self.serialize())

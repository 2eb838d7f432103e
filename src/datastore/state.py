"""Persistence of serialized import task state between invocations."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from datastore.db.service import DatabaseService

logger = logging.getLogger(__name__)

IMPORT_JOBS_DDL = """
CREATE TABLE IF NOT EXISTS import_jobs (
    identifier    VARCHAR(255) NOT NULL PRIMARY KEY,
    state         TEXT         NOT NULL,
    updated_at    TIMESTAMP    DEFAULT CURRENT_TIMESTAMP
);
"""

IMPORT_JOBS_TABLE = "import_jobs"
IMPORT_JOBS_COLUMNS = ["identifier", "state", "updated_at"]
IMPORT_JOBS_CONFLICT_COLUMNS = ["identifier"]


class StateStore(ABC):
    """Keyed store of serialized import task documents."""

    @abstractmethod
    def retrieve(self, identifier: str) -> str | None:
        """Return the stored state for ``identifier``, or None."""

    @abstractmethod
    def store(self, identifier: str, state: str) -> None:
        """Create or replace the state for ``identifier``."""

    @abstractmethod
    def remove(self, identifier: str) -> None:
        """Forget ``identifier``. Unknown identifiers are ignored."""


class MemoryStateStore(StateStore):
    def __init__(self):
        self._states: dict[str, str] = {}

    def retrieve(self, identifier: str) -> str | None:
        return self._states.get(identifier)

    def store(self, identifier: str, state: str) -> None:
        self._states[identifier] = state

    def remove(self, identifier: str) -> None:
        self._states.pop(identifier, None)


def ensure_state_schema(service: DatabaseService) -> None:
    """Create the import_jobs table if it doesn't exist."""
    service.execute_ddl(IMPORT_JOBS_DDL)


class DatabaseStateStore(StateStore):
    """State kept in the ``import_jobs`` table of a connected DatabaseService.

    Idempotent writes: ON CONFLICT (identifier) DO UPDATE.
    """

    def __init__(self, service: DatabaseService):
        self._service = service
        ensure_state_schema(service)

    def retrieve(self, identifier: str) -> str | None:
        ph = self._service.placeholder
        with self._service.transaction():
            rows = self._service.execute(
                f"SELECT state FROM {IMPORT_JOBS_TABLE} WHERE identifier = {ph}", (identifier,)
            )
        return rows[0]["state"] if rows else None

    def store(self, identifier: str, state: str) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        with self._service.transaction():
            self._service.upsert(
                IMPORT_JOBS_TABLE,
                IMPORT_JOBS_COLUMNS,
                [(identifier, state, updated_at)],
                IMPORT_JOBS_CONFLICT_COLUMNS,
            )
        logger.debug("Stored state for job %s", identifier)

    def remove(self, identifier: str) -> None:
        ph = self._service.placeholder
        with self._service.transaction():
            self._service.execute(
                f"DELETE FROM {IMPORT_JOBS_TABLE} WHERE identifier = {ph}", (identifier,)
            )

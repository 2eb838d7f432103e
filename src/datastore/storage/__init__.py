"""Storage backends and factories."""

from typing import Any

from datastore.db import create_service
from datastore.exceptions import ConfigurationError
from datastore.storage.base import REQUIRED_OPERATIONS, StorageInterface, check_storage
from datastore.storage.database import DatabaseStorage
from datastore.storage.memory import MemoryStorage


def create_storage(db_url: str, table: str, pool_size: int = 4) -> DatabaseStorage:
    """Connect to ``db_url`` and return a storage writing to ``table``.

    The returned storage owns its connection pool; call ``close()`` when done.
    """
    service = create_service(db_url, pool_size)
    service.connect()
    return DatabaseStorage(service, table, owns_service=True)


def resolve_storage(config: dict[str, Any] | None) -> StorageInterface:
    """Re-create a storage from the reference produced by ``StorageInterface.config()``."""
    if not config:
        raise ConfigurationError("No storage configuration to resolve; pass a storage explicitly")
    backend = config.get("backend")
    if backend == "database":
        return create_storage(config["db_url"], config["table"])
    raise ConfigurationError(
        f"Cannot re-create a {backend!r} storage from its configuration; pass it explicitly"
    )


__all__ = [
    "REQUIRED_OPERATIONS",
    "DatabaseStorage",
    "MemoryStorage",
    "StorageInterface",
    "check_storage",
    "create_storage",
    "resolve_storage",
]

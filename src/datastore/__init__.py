"""Datastore importer: resumable, time-boxed CSV imports."""

from datastore.exceptions import (
    ConfigurationError,
    DatastoreError,
    InvalidContentError,
    ResourceNotFoundError,
    RowSourceError,
    StateError,
)
from datastore.importer import ImportConfig, ImportTask
from datastore.parser import CsvRowSourceFactory, RowSourceFactory
from datastore.resource import Resource
from datastore.result import Result, Status
from datastore.schema import build_schema, sanitize_name
from datastore.state import DatabaseStateStore, MemoryStateStore, StateStore
from datastore.storage import (
    DatabaseStorage,
    MemoryStorage,
    StorageInterface,
    create_storage,
)

__all__ = [
    "ConfigurationError",
    "CsvRowSourceFactory",
    "DatabaseStateStore",
    "DatabaseStorage",
    "DatastoreError",
    "ImportConfig",
    "ImportTask",
    "InvalidContentError",
    "MemoryStateStore",
    "MemoryStorage",
    "Resource",
    "ResourceNotFoundError",
    "Result",
    "RowSourceError",
    "RowSourceFactory",
    "StateError",
    "StateStore",
    "Status",
    "StorageInterface",
    "build_schema",
    "create_storage",
    "sanitize_name",
]

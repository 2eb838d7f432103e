"""Tests for storage backends and the storage capability check."""

import pytest

from datastore.exceptions import ConfigurationError
from datastore.storage import (
    DatabaseStorage,
    MemoryStorage,
    StorageInterface,
    check_storage,
    create_storage,
    resolve_storage,
)

SCHEMA = {"country": "text", "population": "text"}


@pytest.fixture(params=["memory", "database"])
def storage(request, db_service) -> StorageInterface:
    if request.param == "memory":
        return MemoryStorage()
    return DatabaseStorage(db_service, "datastore_test")


class TestStorageContract:
    def test_empty(self, storage):
        assert storage.get_schema() is None
        assert storage.count() == 0
        assert storage.retrieve_all() == {}

    def test_schema_round_trip_keeps_order(self, storage):
        storage.set_schema(SCHEMA)
        assert list(storage.get_schema().items()) == list(SCHEMA.items())

    def test_store_and_retrieve_in_order(self, storage):
        storage.set_schema(SCHEMA)
        storage.store(["US", "315209000"])
        storage.store_many([["CA", "35002447"], ["AR", "41670000"]])
        assert storage.count() == 3
        assert list(storage.retrieve_all().values()) == [
            ["US", "315209000"],
            ["CA", "35002447"],
            ["AR", "41670000"],
        ]

    def test_row_ids_keep_increasing(self, storage):
        storage.set_schema(SCHEMA)
        storage.store_many([["a", "1"], ["b", "2"]])
        storage.store(["c", "3"])
        assert list(storage.retrieve_all()) == [1, 2, 3]

    def test_drop_clears_rows_and_schema(self, storage):
        storage.set_schema(SCHEMA)
        storage.store(["US", "1"])
        storage.drop()
        assert storage.get_schema() is None
        assert storage.count() == 0
        storage.drop()

    def test_store_many_empty_is_noop(self, storage):
        storage.set_schema(SCHEMA)
        storage.store_many([])
        assert storage.count() == 0


class TestDatabaseStorage:
    def test_reserved_words_and_row_id_column(self, db_service):
        storage = DatabaseStorage(db_service, "datastore_reserved")
        storage.set_schema({"select": "text", "from": "text"})
        storage.store(["a", "b"])
        assert storage.retrieve_all() == {1: ["a", "b"]}

    def test_tables_are_independent(self, db_service):
        first = DatabaseStorage(db_service, "datastore_a")
        second = DatabaseStorage(db_service, "datastore_b")
        first.set_schema(SCHEMA)
        second.set_schema({"x": "text"})
        first.store(["US", "1"])
        first.drop()
        assert second.get_schema() == {"x": "text"}
        assert first.count() == 0

    def test_invalid_table_name(self, db_service):
        with pytest.raises(ConfigurationError, match="Invalid table name"):
            DatabaseStorage(db_service, 'x"; DROP TABLE y; --')

    def test_config_resolves_to_equivalent_storage(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path / 'data.db'}", "datastore_1")
        try:
            storage.set_schema(SCHEMA)
            storage.store(["US", "1"])
            other = resolve_storage(storage.config())
            try:
                assert other.config() == storage.config()
                assert other.retrieve_all() == {1: ["US", "1"]}
            finally:
                other.close()
        finally:
            storage.close()


class TestResolveStorage:
    def test_memory_storage_cannot_be_recreated(self):
        with pytest.raises(ConfigurationError, match="memory"):
            resolve_storage(MemoryStorage().config())

    def test_missing_config(self):
        with pytest.raises(ConfigurationError):
            resolve_storage(None)


class IncompleteStorage:
    def get_schema(self):
        return None

    def store(self, row):
        pass


class DuckTypedStorage:
    def get_schema(self):
        return None

    def set_schema(self, schema):
        pass

    def store(self, row):
        pass

    def count(self):
        return 0

    def retrieve_all(self):
        return {}

    def drop(self):
        pass


class TestCheckStorage:
    def test_names_contract_and_missing_operations(self):
        with pytest.raises(ConfigurationError) as exc_info:
            check_storage(IncompleteStorage())
        message = str(exc_info.value)
        assert "datastore.storage.base.StorageInterface" in message
        assert "set_schema" in message
        assert "retrieve_all" in message
        assert "get_schema" not in message

    def test_plain_object_rejected(self):
        with pytest.raises(ConfigurationError, match="StorageInterface"):
            check_storage(object())

    def test_duck_typed_storage_accepted(self):
        check_storage(DuckTypedStorage())

    def test_subclass_accepted(self):
        check_storage(MemoryStorage())

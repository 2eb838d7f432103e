"""Shared test fixtures."""

import csv
from pathlib import Path

import pytest

from datastore.db import create_service
from datastore.storage import DatabaseStorage

DATA_DIR = Path(__file__).parent / "data"


class FakeClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, step: float = 1.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def db_storage(db_service):
    return DatabaseStorage(db_service, "datastore_1")


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def write_csv(tmp_path):
    """Write a header and rows to a CSV file under tmp_path and return its path."""

    def _write(header: list[str], rows: list[list[str]], name: str = "test.csv") -> Path:
        csv_file = tmp_path / name
        with open(csv_file, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
        return csv_file

    return _write

"""Shared test fixtures."""

from pathlib import Path

import pytest

from csvstage import create_service


class RecordingErrorSink:
    """In-memory stand-in for ErrorLog."""

    def __init__(self):
        self.records = []

    def write(self, record) -> None:
        self.records.append(record)


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def error_sink():
    return RecordingErrorSink()


@pytest.fixture
def write_csv(tmp_path):
    """Write text to a CSV file under tmp_path and return its path."""

    def _write(text: str, name: str = "data.csv") -> Path:
        csv_file = tmp_path / name
        csv_file.write_text(text, encoding="utf-8", newline="")
        return csv_file

    return _write

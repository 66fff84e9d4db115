"""Import configuration loaded from a JSON file."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from csvstage.errors import ConfigError
from csvstage.types import BulkLoadOptions

DB_URL_ENV_VAR = "CSVSTAGE_DB_URL"


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    pool_size: int = 4


@dataclass(frozen=True)
class ProcessConfig:
    csv_folder_path: Path
    temp_table_name: str
    destination_table_name: str
    error_table_name: str
    success_log_table_name: str
    batch_size: int = 5000
    bulk_timeout_seconds: float | None = None

    @property
    def bulk_options(self) -> BulkLoadOptions:
        return BulkLoadOptions(batch_size=self.batch_size, timeout=self.bulk_timeout_seconds)


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    process: ProcessConfig


def _require(section: dict[str, Any], key: str, section_name: str) -> Any:
    try:
        return section[key]
    except KeyError:
        raise ConfigError(f"Missing required setting {section_name}.{key}") from None


def load_config(path: str | Path) -> AppConfig:
    """Read and validate a JSON config file.

    The CSVSTAGE_DB_URL environment variable, if set, overrides database.url.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    db = data.get("database") or {}
    proc = data.get("process") or {}

    url = os.environ.get(DB_URL_ENV_VAR) or _require(db, "url", "database")
    database = DatabaseConfig(url=url, pool_size=int(db.get("pool_size", 4)))

    process = ProcessConfig(
        csv_folder_path=Path(_require(proc, "csv_folder_path", "process")),
        temp_table_name=_require(proc, "temp_table_name", "process"),
        destination_table_name=_require(proc, "destination_table_name", "process"),
        error_table_name=_require(proc, "error_table_name", "process"),
        success_log_table_name=_require(proc, "success_log_table_name", "process"),
        batch_size=int(proc.get("batch_size", 5000)),
        bulk_timeout_seconds=proc.get("bulk_timeout_seconds"),
    )
    if process.batch_size < 1:
        raise ConfigError(f"process.batch_size must be positive, got {process.batch_size}")
    if process.bulk_timeout_seconds is not None and process.bulk_timeout_seconds < 0:
        raise ConfigError("process.bulk_timeout_seconds must not be negative")

    return AppConfig(database=database, process=process)

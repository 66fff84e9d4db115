"""Loading parsed batches into the staging table."""

import logging
import time
from dataclasses import dataclass

from csvstage.errors import StagingSchemaError
from csvstage.ingestion.csv_reader import Batch
from csvstage.service import DatabaseService
from csvstage.types import BulkLoadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    rows: int
    elapsed_seconds: float


def prepare_staging_table(service: DatabaseService, staging_table: str, columns: list[str]) -> None:
    """Drop and recreate the staging table with one TEXT column per CSV column."""
    service.recreate_text_table(staging_table, columns)
    logger.info("Prepared staging table %s with %d columns", staging_table, len(columns))


def load_batch(
    service: DatabaseService,
    staging_table: str,
    batch: Batch,
    options: BulkLoadOptions | None = None,
) -> LoadResult:
    """Bulk-load every row of batch into staging_table in one transaction.

    Each batch column maps to the staging column of the same name. The
    staging table must already exist with exactly the batch's columns.
    """
    options = options or BulkLoadOptions()
    started = time.perf_counter()
    with service.transaction():
        staging_columns = service.table_columns(staging_table)
        if set(staging_columns) != set(batch.columns):
            raise StagingSchemaError(
                f"Staging table {staging_table} has columns {staging_columns}, "
                f"batch has {batch.columns}"
            )
        service.bulk_load(staging_table, batch.columns, batch.rows, options)
    elapsed = time.perf_counter() - started

    logger.info(
        "Loaded %d rows into %s in %.2fs", len(batch), staging_table, elapsed
    )
    return LoadResult(rows=len(batch), elapsed_seconds=elapsed)

"""Transactional transfer of staged rows into the destination table.

The whole transfer runs in one transaction. After copying, the destination
row count must have grown by exactly the staging row count; anything else
(a silently dropped or suppressed row) rolls the transaction back, so the
destination is left as it was before the transfer, truncate included.
"""

import logging
import time
from dataclasses import dataclass

from csvstage.audit import ErrorLog, ErrorRecord, SuccessLog, SuccessRecord
from csvstage.errors import ColumnMappingError, TransferError, TransferMismatchError
from csvstage.service import DatabaseService, quote_identifier
from csvstage.types import BulkLoadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    initial_destination_count: int
    staging_count: int
    final_destination_count: int
    column_count: int
    elapsed_seconds: float

    @property
    def rows_transferred(self) -> int:
        return self.final_destination_count - self.initial_destination_count


def get_column_mapping(
    service: DatabaseService, staging_table: str, destination_table: str
) -> dict[str, str]:
    """Map staging columns to identically named destination columns, in staging order."""
    destination_columns = set(service.table_columns(destination_table))
    return {
        column: column
        for column in service.table_columns(staging_table)
        if column in destination_columns
    }


def transfer_file(
    service: DatabaseService,
    staging_table: str,
    destination_table: str,
    error_log: ErrorLog,
    success_log: SuccessLog,
    *,
    is_first_file: bool,
    options: BulkLoadOptions,
    file_label: str,
) -> TransferResult:
    """Move all staging rows into destination_table and audit the outcome.

    If is_first_file, the destination is truncated first (inside the same
    transaction). On any failure the transaction is rolled back, one error
    record is written and TransferError is raised.
    """
    logger.info("Starting transfer of %s from %s to %s", file_label, staging_table, destination_table)
    started = time.perf_counter()

    try:
        with service.transaction():
            initial_count = service.count_rows(destination_table)
            if is_first_file:
                service.truncate(destination_table)
                initial_count = 0

            mapping = get_column_mapping(service, staging_table, destination_table)
            if not mapping:
                raise ColumnMappingError(
                    f"No matching columns found between {staging_table} and {destination_table}."
                )

            staging_count = service.count_rows(staging_table)

            select_cols = ", ".join(quote_identifier(c) for c in mapping)
            select_sql = f"SELECT {select_cols} FROM {staging_table}"
            for chunk in service.stream(select_sql, options.batch_size):
                service.bulk_load(destination_table, list(mapping.values()), chunk, options)

            final_count = service.count_rows(destination_table)
            transferred = final_count - initial_count
            if transferred != staging_count:
                raise TransferMismatchError(
                    f"Data transfer mismatch! Staging table had {staging_count:,} rows, "
                    f"but {transferred:,} rows were transferred to destination."
                )
    except Exception as e:
        logger.error("Transfer of %s rolled back: %s", file_label, e)
        error_log.write(
            ErrorRecord(
                file_name=file_label,
                column_name="Process",
                error_type="ProcessError",
                reason=str(e),
            )
        )
        if isinstance(e, TransferError):
            raise
        raise TransferError(f"Transfer of {file_label} failed: {e}") from e

    result = TransferResult(
        initial_destination_count=initial_count,
        staging_count=staging_count,
        final_destination_count=final_count,
        column_count=len(mapping),
        elapsed_seconds=time.perf_counter() - started,
    )
    success_log.write(
        SuccessRecord(
            message=f"Successfully transferred data from {file_label}",
            row_count=result.rows_transferred,
            column_count=result.column_count,
            elapsed_seconds=result.elapsed_seconds,
        )
    )
    return result

"""Run an import over every CSV file in a folder."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from csvstage.audit import ErrorLog, ErrorRecord, SuccessLog, SuccessRecord
from csvstage.config import ProcessConfig
from csvstage.errors import AuditWriteError, CsvStageError, TransferError
from csvstage.ingestion.csv_reader import produce_batches
from csvstage.ingestion.staging import load_batch, prepare_staging_table
from csvstage.ingestion.transfer import transfer_file
from csvstage.service import DatabaseService

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    files_processed: int = 0
    files_failed: int = 0
    rows_loaded: int = 0


def list_csv_files(folder: Path) -> list[Path]:
    """CSV files in folder, ordered by name."""
    if not folder.is_dir():
        raise CsvStageError(f"CSV folder not found: {folder}")
    files = sorted(folder.glob("*.csv"))
    if not files:
        raise CsvStageError(f"No CSV files found in {folder}")
    return files


def import_file(
    service: DatabaseService,
    csv_file: Path,
    config: ProcessConfig,
    error_log: ErrorLog,
    success_log: SuccessLog,
    *,
    is_first_file: bool,
) -> int:
    """Stage and transfer one file. Returns the number of rows loaded."""
    started = time.perf_counter()
    options = config.bulk_options
    total_rows = 0
    column_count = 0

    for batch in produce_batches(csv_file, error_log, config.batch_size):
        if batch.is_first_batch:
            column_count = len(batch.columns)
            prepare_staging_table(service, config.temp_table_name, batch.columns)

        loaded = load_batch(service, config.temp_table_name, batch, options)
        total_rows += loaded.rows
        logger.info(
            "Processed %d rows of %s (batch staged in %.2fs)",
            total_rows,
            csv_file.name,
            loaded.elapsed_seconds,
        )

        if batch.is_last_batch:
            transfer_file(
                service,
                config.temp_table_name,
                config.destination_table_name,
                error_log,
                success_log,
                is_first_file=is_first_file,
                options=options,
                file_label=csv_file.name,
            )

    if column_count == 0:
        logger.warning("No valid rows in %s; nothing transferred", csv_file.name)

    success_log.write(
        SuccessRecord(
            message=f"Successfully processed file: {csv_file.name}",
            row_count=total_rows,
            column_count=column_count,
            elapsed_seconds=time.perf_counter() - started,
        )
    )
    return total_rows


def run_import(service: DatabaseService, config: ProcessConfig) -> ImportSummary:
    """Import every CSV file in config.csv_folder_path, one file at a time.

    A failing file is audited and skipped; the next file still runs. Only the
    first file of the run truncates the destination. Audit write failures
    abort the run.
    """
    csv_files = list_csv_files(config.csv_folder_path)
    logger.info("Found %d CSV files to process", len(csv_files))

    error_log = ErrorLog(service, config.error_table_name)
    success_log = SuccessLog(service, config.success_log_table_name)
    error_log.ensure_table()
    success_log.ensure_table()

    summary = ImportSummary()
    for index, csv_file in enumerate(csv_files):
        logger.info("Processing file %d of %d: %s", index + 1, len(csv_files), csv_file.name)
        try:
            rows = import_file(
                service,
                csv_file,
                config,
                error_log,
                success_log,
                is_first_file=index == 0,
            )
        except AuditWriteError:
            raise
        except TransferError as e:
            # transfer_file has already rolled back and written the error record
            logger.error("Transfer failed for %s: %s", csv_file.name, e)
            summary.files_failed += 1
            continue
        except Exception as e:
            logger.exception("Error processing file %s", csv_file.name)
            error_log.write(
                ErrorRecord(
                    file_name=csv_file.name,
                    column_name="File Processing",
                    error_type="ProcessError",
                    reason=str(e),
                )
            )
            summary.files_failed += 1
            continue

        summary.files_processed += 1
        summary.rows_loaded += rows
        logger.info("Completed file %s: %d rows", csv_file.name, rows)

    logger.info(
        "Import complete: %d files processed, %d failed, %d rows",
        summary.files_processed,
        summary.files_failed,
        summary.rows_loaded,
    )
    return summary

"""CSV ingestion: streaming batches, staging loads and the reconciled transfer."""

from csvstage.ingestion.csv_reader import (
    Batch,
    BatchAccumulator,
    normalize_field,
    parse_line,
    parse_row,
    produce_batches,
)
from csvstage.ingestion.staging import LoadResult, load_batch, prepare_staging_table
from csvstage.ingestion.transfer import TransferResult, get_column_mapping, transfer_file

__all__ = [
    "Batch",
    "BatchAccumulator",
    "LoadResult",
    "TransferResult",
    "get_column_mapping",
    "load_batch",
    "normalize_field",
    "parse_line",
    "parse_row",
    "prepare_staging_table",
    "produce_batches",
    "transfer_file",
]

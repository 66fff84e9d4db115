"""Streaming CSV reader: tokenize, normalize and group rows into batches."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator

from csvstage.audit import ErrorRecord, ErrorSink
from csvstage.errors import CsvFileError
from csvstage.types import Record

logger = logging.getLogger(__name__)

# Tried in order; the first matching format wins, so "01-02-2020" is 1 February.
DATE_FORMATS = [
    (re.compile(r"^\d{2}-\d{2}-\d{4}$"), "%d-%m-%Y"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
]
CANONICAL_DATE_FORMAT = "%Y-%m-%d"

_NUMBER_RE = re.compile(r"^[+-]?(?:\d{1,3}(?:,\d{3})+|\d*)(?:\.\d*)?$")
_TWO_PLACES = Decimal("0.01")


@dataclass
class Batch:
    """A bounded slice of one file's rows, all sharing the file's header."""

    columns: list[str]
    rows: list[Record]
    is_first_batch: bool = False
    is_last_batch: bool = False

    def __len__(self) -> int:
        return len(self.rows)


def parse_line(line: str) -> list[str]:
    """Split one CSV line on commas that are outside double quotes.

    Quotes only toggle quoted mode and are dropped; there is no escaping,
    so a literal quote character cannot be represented.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def parse_date(value: str) -> str | None:
    """Return value as YYYY-MM-DD if it matches an accepted date format."""
    for pattern, fmt in DATE_FORMATS:
        if not pattern.match(value):
            continue
        try:
            return datetime.strptime(value, fmt).strftime(CANONICAL_DATE_FORMAT)
        except ValueError:
            continue
    return None


def parse_number(value: str) -> str | None:
    """Return the invariant rendering of value if it is a plain decimal number."""
    if not _NUMBER_RE.match(value) or not any(c.isdigit() for c in value):
        return None
    number = Decimal(value.replace(",", ""))
    if number.is_zero():
        number = number.copy_abs()
    # Only a single fractional digit is widened (10.5 -> 10.50); other scales are kept.
    if number.as_tuple().exponent == -1:
        number = number.quantize(_TWO_PLACES)
    return format(number, "f")


def normalize_field(raw: str) -> str | None:
    """Canonical text for one field; None marks SQL NULL."""
    value = raw.strip()
    if not value:
        return None
    date = parse_date(value)
    if date is not None:
        return date
    number = parse_number(value)
    if number is not None:
        return number
    return value


def parse_row(fields: list[str]) -> Record:
    return tuple(normalize_field(f) for f in fields)


class BatchAccumulator:
    """Collects records and cuts them into batches of batch_size."""

    def __init__(self, columns: list[str], batch_size: int):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._columns = columns
        self._batch_size = batch_size
        self._rows: list[Record] = []
        self._emitted = 0

    def add(self, record: Record) -> Batch | None:
        """Append a record; returns a full batch once batch_size is reached."""
        self._rows.append(record)
        if len(self._rows) >= self._batch_size:
            return self._emit(last=False)
        return None

    def finish(self) -> Batch | None:
        """Return the closing batch, or None if no record was ever added.

        When the record count is an exact multiple of batch_size the closing
        batch is empty; it still carries is_last_batch.
        """
        if self._emitted == 0 and not self._rows:
            return None
        return self._emit(last=True)

    def _emit(self, last: bool) -> Batch:
        batch = Batch(
            columns=self._columns,
            rows=self._rows,
            is_first_batch=self._emitted == 0,
            is_last_batch=last,
        )
        self._emitted += 1
        self._rows = []
        return batch


def produce_batches(
    file_path: str | Path,
    error_sink: ErrorSink,
    batch_size: int,
) -> Iterator[Batch]:
    """Yield batches of normalized rows from a CSV file.

    Never loads the full file into memory. Malformed rows are reported to
    error_sink and skipped; blank lines are skipped silently. Raises
    CsvFileError for a missing header and OSError if the file can't be
    opened, both on the first pull.
    """
    file_path = Path(file_path)
    file_name = file_path.name

    # utf-8-sig drops a leading BOM; undecodable bytes become U+FFFD instead of failing the file.
    with open(file_path, encoding="utf-8-sig", errors="replace", newline="") as f:
        header_line = f.readline().rstrip("\r\n")
        if not header_line.strip():
            raise CsvFileError(f"CSV file is empty: {file_name}")

        columns = [name.strip() for name in parse_line(header_line)]
        accumulator = BatchAccumulator(columns, batch_size)

        for line_num, line in enumerate(f, start=2):
            line = line.rstrip("\r\n")
            if not line.strip():
                continue

            try:
                fields = parse_line(line)
                record = parse_row(fields) if len(fields) == len(columns) else None
            except Exception as e:
                logger.warning("Skipping line %d of %s: %s", line_num, file_name, e)
                error_sink.write(
                    ErrorRecord(
                        file_name=file_name,
                        column_name="Data Processing",
                        error_type="ProcessError",
                        reason=str(e),
                    )
                )
                continue

            if record is None:
                logger.warning(
                    "Skipping line %d of %s: %d fields, expected %d",
                    line_num,
                    file_name,
                    len(fields),
                    len(columns),
                )
                error_sink.write(
                    ErrorRecord(
                        file_name=file_name,
                        column_name="Row Structure",
                        error_type="CSV Parsing Error",
                        reason=(
                            f"Row length mismatch in file {file_name}: line {line_num} "
                            f"has {len(fields)} fields, expected {len(columns)}"
                        ),
                    )
                )
                continue

            batch = accumulator.add(record)
            if batch is not None:
                yield batch

        batch = accumulator.finish()
        if batch is not None:
            yield batch

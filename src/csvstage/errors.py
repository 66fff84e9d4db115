"""Exception hierarchy for csvstage."""


class CsvStageError(Exception):
    """Base exception for all csvstage failures."""


class ConfigError(CsvStageError):
    """Raised for a missing or invalid configuration file."""


class CsvFileError(CsvStageError):
    """Raised when a CSV file cannot be read as a whole (e.g. empty header)."""


class StagingSchemaError(CsvStageError):
    """Raised when the staging table does not match a batch's columns."""


class AuditWriteError(CsvStageError):
    """Raised when an audit record cannot be persisted."""


class TransferError(CsvStageError):
    """Raised when moving staging rows into the destination fails."""


class ColumnMappingError(TransferError):
    """Raised when staging and destination share no column names."""


class TransferMismatchError(TransferError):
    """Raised when the destination did not grow by the staging row count."""

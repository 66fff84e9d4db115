"""Shared types for the csvstage package."""

from dataclasses import dataclass

Params = tuple | list | dict
Record = tuple[str | None, ...]


@dataclass(frozen=True)
class BulkLoadOptions:
    """Settings passed to every bulk load.

    timeout is in seconds; None waits for the store indefinitely.
    """

    batch_size: int = 100_000
    timeout: float | None = None

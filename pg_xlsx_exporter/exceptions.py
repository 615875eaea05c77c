from __future__ import annotations

"""Error taxonomy for the PostgreSQL -> XLSX exporter.

Every failure that aborts an export run derives from ExportError so the CLI
can report it uniformly. The concrete classes map one-to-one to the stage
that failed (connection, query, schema, write barrier, persistence).
"""

__all__ = [
    "ExportError",
    "DatabaseConnectionError",
    "QueryError",
    "SchemaMismatchError",
    "WriteTimeoutError",
    "PersistError",
    "WorkerPoolClosedError",
]


class ExportError(Exception):
    """Base class for failures that abort an export run."""


class DatabaseConnectionError(ExportError):
    """A pooled connection could not be obtained (pool exhausted / unreachable DB)."""


class QueryError(ExportError):
    """The query failed to prepare, execute or fetch."""


class SchemaMismatchError(ExportError):
    """A row's field count differs from the declared column count."""

    def __init__(self, expected: int, actual: int, row_index: int) -> None:
        super().__init__(
            f"row {row_index} has {actual} fields, expected {expected} (declared columns)"
        )
        self.expected = expected
        self.actual = actual
        self.row_index = row_index


class WriteTimeoutError(ExportError):
    """The partition-write barrier exceeded its deadline."""

    def __init__(self, timeout: float, finished: int, unfinished: int) -> None:
        super().__init__(
            f"partition writes did not finish within {timeout}s "
            f"(finished={finished} unfinished={unfinished})"
        )
        self.timeout = timeout
        self.finished = finished
        self.unfinished = unfinished


class PersistError(ExportError):
    """Serializing or storing the workbook failed."""


class WorkerPoolClosedError(ExportError):
    """A task was submitted to a worker pool that has been shut down."""

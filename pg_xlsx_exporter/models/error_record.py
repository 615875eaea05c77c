from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

This module defines the ErrorRecord dataclass used for structured error logging
of failed export runs. It supports table_index=-1 as a sentinel value for
run-level errors that do not belong to one table (e.g. persisting the workbook).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        sheet: Sheet name of the failing table ("<RUN>" for run-level errors)
        table_index: 0-based position of the table in the config. -1 for run-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Driver / library error message or description
    """
    timestamp: str  # ISO8601 UTC
    sheet: str
    table_index: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(sheet: str, table_index: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            sheet=sheet,
            table_index=table_index,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)

from __future__ import annotations

from dataclasses import dataclass, replace

"""Config dataclasses for the PostgreSQL -> XLSX exporter.

These are the typed domain objects produced by pg_xlsx_exporter.config.loader.
TableSpec is the unit of work of an export run: one query, one sheet.
"""

__all__ = [
    "DatabaseConfig",
    "TableSpec",
    "ExportConfig",
    "DEFAULT_OUTPUT_PATH",
    "DEFAULT_WRITE_TIMEOUT_SECONDS",
]

DEFAULT_OUTPUT_PATH = "output.xlsx"
DEFAULT_WRITE_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class TableSpec:
    """One exported table: the header columns and the query producing the rows.

    The query must return exactly ``len(columns)`` columns; a mismatch is
    detected while writing and aborts the run.
    """
    columns: tuple[str, ...]
    query: str

    def __post_init__(self) -> None:
        if not self.columns:
            raise ValueError("TableSpec.columns must not be empty")

    @property
    def sheet_name(self) -> str:
        # Sheets are named after the first declared column, not the table.
        return self.columns[0]


@dataclass(frozen=True)
class ExportConfig:
    """Root configuration object for an export run."""
    tables: tuple[TableSpec, ...]  # Export order = sheet order
    output_path: str = DEFAULT_OUTPUT_PATH
    worker_count: int | None = None  # None -> CPU count
    write_timeout_seconds: float = DEFAULT_WRITE_TIMEOUT_SECONDS
    database: DatabaseConfig = DatabaseConfig()

    def with_overrides(self, *, output_path: str | None = None, worker_count: int | None = None) -> ExportConfig:
        """Return a copy with CLI overrides applied (None keeps the configured value)."""
        return replace(
            self,
            output_path=output_path if output_path is not None else self.output_path,
            worker_count=worker_count if worker_count is not None else self.worker_count,
        )

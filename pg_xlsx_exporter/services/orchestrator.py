from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.fetch import fetch_rows
from ..excel.workbook import WorkbookSink, persist_workbook
from ..excel.writer import HEADER_ROW_COUNT, write_header, write_partition
from ..exceptions import (
    DatabaseConnectionError,
    ExportError,
    PersistError,
    QueryError,
    SchemaMismatchError,
    WriteTimeoutError,
)
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import ExportConfig, TableSpec
from ..models.export_result import ExportResult, TableStat
from ..models.export_state import TERMINAL_STATES, ExportState
from ..models.partition import RowRecord
from .partition_planner import split_rows
from .progress import ProgressTracker
from .worker_pool import WorkerPool, default_worker_count

"""Export orchestration.

Drives the whole run: a strictly sequential loop over the configured tables
(fetch -> partition -> parallel write -> barrier), then one persist of the
workbook. Parallelism exists only inside a table's write phase.

Any failure moves the run to FAILED and skips persisting, so the output file
is either complete or absent.
"""

__all__ = [
    "ExportOrchestrator",
    "export_all",
]

logger = logging.getLogger(__name__)

RUN_LEVEL_SHEET = "<RUN>"

_ALLOWED_TRANSITIONS: dict[ExportState, frozenset[ExportState]] = {
    ExportState.IDLE: frozenset({ExportState.FETCHING, ExportState.ALL_TABLES_COMPLETE}),
    ExportState.FETCHING: frozenset({ExportState.PARTITIONING}),
    ExportState.PARTITIONING: frozenset({ExportState.WRITING}),
    ExportState.WRITING: frozenset({ExportState.TABLE_COMPLETE}),
    ExportState.TABLE_COMPLETE: frozenset({ExportState.FETCHING, ExportState.ALL_TABLES_COMPLETE}),
    ExportState.ALL_TABLES_COMPLETE: frozenset({ExportState.PERSISTING}),
    ExportState.PERSISTING: frozenset({ExportState.DONE}),
    ExportState.DONE: frozenset(),
    ExportState.FAILED: frozenset(),
}

_ERROR_TYPES: tuple[tuple[type[Exception], str], ...] = (
    (DatabaseConnectionError, "CONNECTION_ERROR"),
    (QueryError, "QUERY_ERROR"),
    (SchemaMismatchError, "SCHEMA_MISMATCH"),
    (WriteTimeoutError, "WRITE_TIMEOUT"),
    (PersistError, "PERSIST_ERROR"),
)


def _error_type(exc: BaseException) -> str:
    for cls, name in _ERROR_TYPES:
        if isinstance(exc, cls):
            return name
    return "UNEXPECTED_ERROR"


class ExportOrchestrator:
    """Sequential table loop with a per-table completion barrier.

    The orchestrator owns neither the connection source nor the worker pool;
    both are created and released by the caller (see export_all).
    """

    def __init__(
        self,
        tables: Sequence[TableSpec],
        source: Any,
        pool: WorkerPool,
        *,
        sink: WorkbookSink | None = None,
        write_timeout_seconds: float = 10.0,
        error_log: ErrorLogBuffer | None = None,
        fetch: Callable[[Any, str], list[RowRecord]] = fetch_rows,
    ) -> None:
        self.tables = tuple(tables)
        self.source = source
        self.pool = pool
        self.sink = sink if sink is not None else WorkbookSink()
        self.write_timeout_seconds = write_timeout_seconds
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self._fetch = fetch
        self.state = ExportState.IDLE
        self.history: list[tuple[ExportState, int | None]] = [(ExportState.IDLE, None)]
        self.table_index: int | None = None

    def _transition(self, new_state: ExportState) -> None:
        if new_state is not ExportState.FAILED and new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal export state transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append((new_state, self.table_index))
        logger.debug("state=%s table_index=%s", new_state.value, self.table_index)

    def run(self, destination: Path) -> list[TableStat]:
        """Export every table, then persist the workbook to ``destination``.

        Returns:
            per-table statistics in table order

        Raises:
            ExportError (or one of its subclasses): the run failed and nothing was persisted
        """
        if self.state is not ExportState.IDLE:
            raise RuntimeError(f"orchestrator already ran (state={self.state.value})")

        stats: list[TableStat] = []
        try:
            with ProgressTracker(len(self.tables), description="Exporting tables") as progress:
                for i, spec in enumerate(self.tables):
                    self.table_index = i
                    progress.start_table(spec.sheet_name)
                    stat = self._export_table(spec)
                    stats.append(stat)
                    progress.finish_table()
                    progress.set_postfix(rows=sum(s.row_count for s in stats))
                    logger.info(
                        "table %d/%d sheet=%s rows=%d partitions=%s",
                        i + 1,
                        len(self.tables),
                        stat.sheet_name,
                        stat.row_count,
                        list(stat.partition_sizes),
                    )

            self.table_index = None
            self._transition(ExportState.ALL_TABLES_COMPLETE)
            self._transition(ExportState.PERSISTING)
            persist_workbook(self.sink, destination)
            self._transition(ExportState.DONE)
        except ExportError as e:
            self._fail(e)
            raise
        except Exception as e:
            self._fail(e)
            raise ExportError(f"unexpected failure: {e}") from e
        return stats

    def _export_table(self, spec: TableSpec) -> TableStat:
        started = time.perf_counter()

        self._transition(ExportState.FETCHING)
        rows = self._fetch(self.source, spec.query)

        self._transition(ExportState.PARTITIONING)
        sheet = self.sink.create_sheet(spec.sheet_name)
        write_header(sheet, spec.columns)
        partitions = split_rows(rows, self.pool.max_workers, HEADER_ROW_COUNT)

        self._transition(ExportState.WRITING)
        cancel_event = self.pool.cancel_event
        for partition in partitions:
            self.pool.submit(write_partition, sheet, partition, spec.columns, cancel_event)
        written = self.pool.await_completion(self.write_timeout_seconds)
        if sum(written) != len(rows):
            raise ExportError(
                f"sheet '{sheet.name}' incomplete: wrote {sum(written)} of {len(rows)} rows"
            )

        self._transition(ExportState.TABLE_COMPLETE)
        return TableStat(
            sheet_name=sheet.name,
            row_count=len(rows),
            partition_sizes=tuple(len(p) for p in partitions),
            elapsed_seconds=time.perf_counter() - started,
        )

    def _fail(self, exc: BaseException) -> None:
        if self.state in TERMINAL_STATES:
            return
        failed_in = self.state
        if self.table_index is not None:
            sheet = self.tables[self.table_index].sheet_name
            table_index = self.table_index
        else:
            sheet = RUN_LEVEL_SHEET
            table_index = -1
        self._transition(ExportState.FAILED)
        self.error_log.append(
            ErrorRecord.create(
                sheet=sheet,
                table_index=table_index,
                error_type=_error_type(exc),
                message=str(exc),
            )
        )
        logger.debug("export failed in state=%s sheet=%s: %r", failed_in.value, sheet, exc)
        try:
            path = self.error_log.flush()
        except OSError as flush_e:
            logger.warning("could not write error log: %s", flush_e)
        else:
            if path is not None:
                logger.info("error log written: %s", path)


def export_all(
    config: ExportConfig,
    source: Any,
    *,
    error_log: ErrorLogBuffer | None = None,
) -> ExportResult:
    """Run a complete export described by ``config`` against ``source``.

    One WorkerPool is created for the whole run and shut down once after the
    last table (also on failure).

    Raises:
        ExportError: the run failed; no output file was written
    """
    worker_count = config.worker_count or default_worker_count()
    destination = Path(config.output_path)
    start_time = datetime.now(UTC)
    logger.info(
        "exporting %d table(s) to %s with %d worker(s)", len(config.tables), destination, worker_count
    )

    with WorkerPool(worker_count) as pool:
        orchestrator = ExportOrchestrator(
            config.tables,
            source,
            pool,
            write_timeout_seconds=config.write_timeout_seconds,
            error_log=error_log,
        )
        stats = orchestrator.run(destination)

    end_time = datetime.now(UTC)
    return ExportResult(
        output_path=str(destination),
        worker_count=worker_count,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        tables=stats,
    )

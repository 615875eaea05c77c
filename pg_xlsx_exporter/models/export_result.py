from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Export result models for the PostgreSQL -> XLSX exporter.

TableStat carries per-table metrics, ExportResult aggregates a finished run
and feeds the SUMMARY line.
"""


@dataclass(frozen=True)
class TableStat:
    """Per-table export statistics."""
    sheet_name: str  # シート名 (先頭列名)
    row_count: int  # データ行数 (ヘッダ除く)
    partition_sizes: tuple[int, ...]  # ワーカー毎の行数 (worker index 順)
    elapsed_seconds: float  # fetch + write 時間


@dataclass(frozen=True)
class ExportResult:
    """Aggregated results of a completed export run."""
    output_path: str
    worker_count: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    tables: list[TableStat] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return sum(t.row_count for t in self.tables)

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.total_rows / self.elapsed_seconds

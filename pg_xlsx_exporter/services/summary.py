from __future__ import annotations

from ..models.export_result import ExportResult

"""Summary line rendering for the SUMMARY output of an export run."""


def _format_number(value: float) -> str:
    # Integers without decimals, tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return str(round(value, 3))


def render_summary_line(result: ExportResult) -> str:
    """Render a SUMMARY line from an ExportResult.

    Format:
    SUMMARY tables={n} rows={rows} workers={w} elapsed_sec={elapsed}
    throughput_rps={throughput} output={path}

    Examples:
        >>> from datetime import datetime, timezone
        >>> from pg_xlsx_exporter.models.export_result import TableStat
        >>> start = datetime(2023, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2023, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ExportResult(
        ...     output_path="output.xlsx", worker_count=4, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, tables=[TableStat("ID", 1000, (251, 251, 251, 247), 1.5)],
        ... )
        >>> render_summary_line(result)
        'SUMMARY tables=1 rows=1000 workers=4 elapsed_sec=2 throughput_rps=500 output=output.xlsx'
    """
    return (
        f"SUMMARY tables={len(result.tables)} "
        f"rows={result.total_rows} "
        f"workers={result.worker_count} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)} "
        f"output={result.output_path}"
    )

from __future__ import annotations

import threading
from collections.abc import Sequence

from ..exceptions import SchemaMismatchError
from ..models.partition import Partition
from .workbook import SheetHandle

"""Sheet writing.

write_header() fills row 0 with the column names (called once by the
orchestrator). write_partition() is the unit of work run by the worker pool:
it writes its rows at destination_row_offset, +1, ... and touches no other
rows, so concurrent partitions of one sheet need no lock.
"""

__all__ = [
    "HEADER_ROW_COUNT",
    "write_header",
    "write_partition",
]

HEADER_ROW_COUNT = 1


def write_header(sheet: SheetHandle, columns: Sequence[str]) -> None:
    row = sheet.create_row(0)
    for i, name in enumerate(columns):
        row.create_cell(i).set_value(name)


def write_partition(
    sheet: SheetHandle,
    partition: Partition,
    columns: Sequence[str],
    cancel_event: threading.Event | None = None,
) -> int:
    """Write one partition's rows in order.

    Returns the number of rows written. When ``cancel_event`` is set the task
    stops before the next row, leaving the rest of its range unwritten.

    Raises:
        SchemaMismatchError: a row's field count differs from len(columns);
            the offending row is not written
    """
    expected = len(columns)
    written = 0
    for k, record in enumerate(partition.rows):
        if cancel_event is not None and cancel_event.is_set():
            break
        row_index = partition.destination_row_offset + k
        if len(record) != expected:
            raise SchemaMismatchError(expected=expected, actual=len(record), row_index=row_index)
        row = sheet.create_row(row_index)
        for i in range(expected):
            row.create_cell(i).set_value(record[i])
        written += 1
    return written

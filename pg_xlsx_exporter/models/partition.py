from __future__ import annotations

from dataclasses import dataclass

"""Partition models for the concurrent sheet-writing phase.

A RowRecord is one fetched row with every value already stringified (SQL
NULL stays None). A table's rows are split into contiguous Partitions, each
written by one worker starting at its destination row offset.
"""

__all__ = [
    "RowRecord",
    "PartitionBounds",
    "Partition",
]

RowRecord = tuple[str | None, ...]


@dataclass(frozen=True)
class PartitionBounds:
    """Half-open row range [start, stop) of the fetched rows for one worker."""
    index: int  # Worker index
    start: int
    stop: int
    destination_row_offset: int  # Sheet row index of the first row (header rows + start)

    @property
    def size(self) -> int:
        return self.stop - self.start


@dataclass(frozen=True)
class Partition:
    """Rows assigned to one write task.

    Rows are written to sheet rows destination_row_offset, +1, ... in order.
    An empty partition is a valid no-op task.
    """
    rows: tuple[RowRecord, ...]
    destination_row_offset: int

    def __len__(self) -> int:
        return len(self.rows)

from __future__ import annotations

from collections.abc import Sequence

from ..models.partition import Partition, PartitionBounds, RowRecord

"""Partition planning for the concurrent write phase.

chunk_size = row_count // worker_count + 1. This is not an exact ceiling:
the trailing workers may get a smaller or an empty share (e.g. 4 rows / 2
workers -> 3 + 1). Exactly worker_count partitions are always produced, in
worker order; empty ones are no-op tasks.
"""

__all__ = [
    "plan_partitions",
    "split_rows",
]


def plan_partitions(row_count: int, worker_count: int, header_row_count: int = 1) -> list[PartitionBounds]:
    """Compute disjoint, contiguous row ranges covering [0, row_count).

    Args:
        row_count: number of fetched data rows
        worker_count: number of write tasks (>= 1)
        header_row_count: sheet rows occupied before the first data row

    Returns:
        worker_count bounds in worker-index order with non-decreasing offsets
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if row_count < 0:
        raise ValueError(f"row_count must be >= 0, got {row_count}")
    if header_row_count < 0:
        raise ValueError(f"header_row_count must be >= 0, got {header_row_count}")

    chunk_size = row_count // worker_count + 1
    bounds: list[PartitionBounds] = []
    for i in range(worker_count):
        start = min(i * chunk_size, row_count)
        stop = min((i + 1) * chunk_size, row_count)
        bounds.append(
            PartitionBounds(
                index=i,
                start=start,
                stop=stop,
                destination_row_offset=header_row_count + start,
            )
        )
    return bounds


def split_rows(rows: Sequence[RowRecord], worker_count: int, header_row_count: int = 1) -> list[Partition]:
    """Apply plan_partitions to an in-memory row list."""
    return [
        Partition(rows=tuple(rows[b.start:b.stop]), destination_row_offset=b.destination_row_offset)
        for b in plan_partitions(len(rows), worker_count, header_row_count)
    ]

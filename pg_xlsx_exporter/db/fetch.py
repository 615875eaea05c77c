from __future__ import annotations

import logging
import time
from typing import Any

import psycopg2

from ..exceptions import QueryError
from ..models.partition import RowRecord

"""Row fetching.

Runs one query against a pooled connection and materializes the whole result
set in memory. Every value is converted to its string representation here;
no numeric/date typing survives past this boundary. SQL NULL stays None and is
written as an empty cell.
"""

__all__ = [
    "fetch_rows",
    "stringify",
]

logger = logging.getLogger(__name__)


def stringify(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def fetch_rows(source: Any, query: str) -> list[RowRecord]:
    """Execute ``query`` and return every row with stringified fields.

    Parameters
    ----------
    source: ConnectionSource (anything with a ``connection()`` context manager)
    query: SQL text, executed as-is

    Raises
    ------
    DatabaseConnectionError: no connection could be acquired
    QueryError: execute or fetch failed; no partial result is returned
    """
    start = time.perf_counter()
    with source.connection() as conn:
        cur = conn.cursor()
        try:
            cur.execute(query)
            if cur.description is None:
                raise QueryError(f"query returned no result set: {query}")
            column_count = len(cur.description)
            rows: list[RowRecord] = []
            for record in cur:
                rows.append(tuple(stringify(record[i]) for i in range(column_count)))
        except psycopg2.Error as e:
            raise QueryError(str(e).strip() or type(e).__name__) from e
        finally:
            cur.close()
    logger.debug(
        "fetched rows=%d columns=%d elapsed=%.3fs", len(rows), column_count, time.perf_counter() - start
    )
    return rows

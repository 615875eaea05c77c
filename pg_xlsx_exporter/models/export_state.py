from __future__ import annotations

from enum import Enum

"""ExportState enum for the export orchestrator lifecycle.

State transitions:
    idle -> fetching -> partitioning -> writing -> table_complete
         -> (fetching for the next table | all_tables_complete)
         -> persisting -> done
FAILED is reachable from every state and is terminal.
"""

__all__ = [
    "ExportState",
    "TERMINAL_STATES",
]


class ExportState(Enum):
    """Orchestrator state; the per-table states apply to the current table index."""
    IDLE = "idle"
    FETCHING = "fetching"
    PARTITIONING = "partitioning"
    WRITING = "writing"
    TABLE_COMPLETE = "table_complete"
    ALL_TABLES_COMPLETE = "all_tables_complete"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ExportState.DONE, ExportState.FAILED})

"""Domain models for the PostgreSQL -> XLSX exporter.

This package contains the domain model classes used throughout the application:
configuration, partitions, orchestrator state, results and error records.
"""

from .config_models import DatabaseConfig, ExportConfig, TableSpec
from .error_record import ErrorRecord
from .export_result import ExportResult, TableStat
from .export_state import ExportState
from .partition import Partition, PartitionBounds, RowRecord

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ExportConfig",
    "TableSpec",
    # Processing models
    "ExportState",
    "Partition",
    "PartitionBounds",
    "RowRecord",
    # Results
    "ErrorRecord",
    "ExportResult",
    "TableStat",
]

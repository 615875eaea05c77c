"""PostgreSQL tables -> multi-sheet XLSX exporter."""

__version__ = "0.1.0"

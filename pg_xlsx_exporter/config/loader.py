from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_OUTPUT_PATH,
    DEFAULT_WRITE_TIMEOUT_SECONDS,
    DatabaseConfig,
    ExportConfig,
    TableSpec,
)

"""Config loader.

Responsibilities:
- Load YAML config (default config/export.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults (output_path=output.xlsx, write_timeout_seconds=10)
- Build the typed ExportConfig / TableSpec objects
"""

DEFAULT_CONFIG_PATH = Path("config/export.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Args:
        data: Configuration data to validate

    Raises:
        ConfigError: If any of the following occurs:
            - The schema file does not exist.
            - The schema file is not valid JSON.
            - The config data fails schema validation (e.g., missing required keys,
              wrong types, or other schema violations).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ExportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    tables = tuple(
        TableSpec(columns=tuple(t["columns"]), query=t["query"]) for t in data["tables"]
    )
    return ExportConfig(
        tables=tables,
        output_path=data.get("output_path", DEFAULT_OUTPUT_PATH),
        worker_count=data.get("worker_count"),
        write_timeout_seconds=float(data.get("write_timeout_seconds", DEFAULT_WRITE_TIMEOUT_SECONDS)),
        database=db,
    )

from __future__ import annotations

import json
from pathlib import Path

from pg_xlsx_exporter.logging.error_log import ErrorLogBuffer
from pg_xlsx_exporter.models.error_record import ErrorRecord


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(ErrorRecord.create("JOB_ID", 2, "SCHEMA_MISMATCH", "row 3 has 5 fields, expected 4"))
    buf.append(ErrorRecord.create("<RUN>", -1, "PERSIST_ERROR", "disk full"))
    path = buf.flush()
    assert path is not None and path.parent == tmp_path / "logs"
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["error_type"] for line in lines] == ["SCHEMA_MISMATCH", "PERSIST_ERROR"]
    # buffer cleared
    assert buf.flush() is None


def test_flush_without_records_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_file_path_is_stable(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    assert buf.file_path == buf.file_path

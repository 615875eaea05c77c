# Shared pytest fixtures
from __future__ import annotations

import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import psycopg2
import pytest


@dataclass
class FakeResult:
    """Canned result for one query: rows plus optional failure injection."""
    column_count: int
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    execute_error: Exception | None = None  # raised by execute()
    fail_after: int | None = None  # raise OperationalError after N rows were iterated
    no_result_set: bool = False  # statement without a result set (description None)


class FakeCursor:
    def __init__(self, results: dict[str, FakeResult]) -> None:
        self._results = results
        self._current: FakeResult | None = None
        self.description: tuple[tuple[str, ...], ...] | None = None
        self.closed = False
        self.executed: list[str] = []

    def execute(self, query: str) -> None:
        self.executed.append(query)
        if query not in self._results:
            raise psycopg2.ProgrammingError(f'relation for query "{query}" does not exist')
        result = self._results[query]
        if result.execute_error is not None:
            raise result.execute_error
        self._current = result
        if result.no_result_set:
            self.description = None
            return
        self.description = tuple((f"col{i}",) for i in range(result.column_count))

    def __iter__(self):
        assert self._current is not None
        for i, row in enumerate(self._current.rows):
            if self._current.fail_after is not None and i >= self._current.fail_after:
                raise psycopg2.OperationalError("server closed the connection unexpectedly")
            yield row

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    def __init__(self, results: dict[str, FakeResult]) -> None:
        self._results = results
        self.cursors: list[FakeCursor] = []

    def cursor(self) -> FakeCursor:
        cur = FakeCursor(self._results)
        self.cursors.append(cur)
        return cur


class FakeConnectionSource:
    """In-memory stand-in for ConnectionSource (acquire/release/connection)."""

    def __init__(self, results: dict[str, FakeResult], *, acquire_error: Exception | None = None) -> None:
        self.results = results
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0
        self.connections: list[FakeConnection] = []

    def acquire(self) -> FakeConnection:
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired += 1
        conn = FakeConnection(self.results)
        self.connections.append(conn)
        return conn

    def release(self, conn: FakeConnection) -> None:
        self.released += 1

    @contextmanager
    def connection(self):
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        pass


DEPARTMENTS_QUERY = "SELECT department_id, department_name, manager_id, location_id FROM departments"
EMPLOYEES_QUERY = "SELECT employee_id, first_name, last_name FROM employees WHERE 1 = 0"
JOBS_QUERY = "SELECT job_id, job_title, min_salary, max_salary FROM jobs"


def hr_results() -> dict[str, FakeResult]:
    """3 tables with 4 / 0 / 7 rows."""
    departments = [
        (10, "Administration", 200, 1700),
        (20, "Marketing", 201, 1800),
        (30, "Purchasing", 114, 1700),
        (40, "Human Resources", None, 2400),
    ]
    jobs = [
        ("AD_PRES", "President", 20080, 40000),
        ("AD_VP", "Administration Vice President", 15000, 30000),
        ("AD_ASST", "Administration Assistant", 3000, 6000),
        ("FI_MGR", "Finance Manager", 8200, 16000),
        ("FI_ACCOUNT", "Accountant", 4200, 9000),
        ("AC_MGR", "Accounting Manager", 8200, 16000),
        ("IT_PROG", "Programmer", 4000, 10000),
    ]
    return {
        DEPARTMENTS_QUERY: FakeResult(column_count=4, rows=departments),
        EMPLOYEES_QUERY: FakeResult(column_count=3, rows=[]),
        JOBS_QUERY: FakeResult(column_count=4, rows=jobs),
    }


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # keep developer machines' DB settings out of the tests
        for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""output_path: ./out/hr.xlsx
worker_count: 2
write_timeout_seconds: 5
tables:
  - columns: [DEPARTMENT_ID, DEPARTMENT_NAME, MANAGER_ID, LOCATION_ID]
    query: {DEPARTMENTS_QUERY}
  - columns: [EMPLOYEE_ID, FIRST_NAME, LAST_NAME]
    query: {EMPLOYEES_QUERY}
  - columns: [JOB_ID, JOB_TITLE, MIN_SALARY, MAX_SALARY]
    query: {JOBS_QUERY}
database:
  host: localhost
  port: 5432
  user: hr
  password: secret
  database: hr
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    (temp_workdir / "out").mkdir()
    cfg = temp_workdir / "config" / "export.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fake_source() -> FakeConnectionSource:
    return FakeConnectionSource(hr_results())

from __future__ import annotations

from unittest.mock import MagicMock, patch

import psycopg2
import pytest
from psycopg2 import pool as pg_pool

from pg_xlsx_exporter.db.connection_pool import ConnectionSource, open_connection_pool, resolve_dsn
from pg_xlsx_exporter.exceptions import DatabaseConnectionError
from pg_xlsx_exporter.models.config_models import DatabaseConfig

DB_CFG = DatabaseConfig(host="db.local", port=5433, user="hr", password="pw", database="hr")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(var, raising=False)


def test_resolve_dsn_from_config():
    assert resolve_dsn(DB_CFG) == "host=db.local port=5433 user=hr dbname=hr password=pw"


def test_resolve_dsn_defaults():
    assert resolve_dsn(DatabaseConfig()) == "host=localhost port=5432 user=postgres dbname=postgres"


def test_env_variables_override_config(monkeypatch):
    monkeypatch.setenv("PGHOST", "envhost")
    monkeypatch.setenv("PGUSER", "envuser")
    assert resolve_dsn(DB_CFG) == "host=envhost port=5433 user=envuser dbname=hr password=pw"


def test_database_url_wins(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@h/db")
    cfg = DatabaseConfig(dsn="postgresql://cfg/db")
    assert resolve_dsn(cfg) == "postgresql://u:p@h/db"


def test_config_dsn_before_individual_fields():
    cfg = DatabaseConfig(host="ignored", dsn="postgresql://cfg/db")
    assert resolve_dsn(cfg) == "postgresql://cfg/db"


def test_connection_context_releases_on_error():
    pool = MagicMock()
    conn = object()
    pool.getconn.return_value = conn
    source = ConnectionSource(pool)
    with pytest.raises(RuntimeError):
        with source.connection() as c:
            assert c is conn
            raise RuntimeError("query failed")
    pool.putconn.assert_called_once_with(conn)


def test_exhausted_pool_raises_connection_error():
    pool = MagicMock()
    pool.getconn.side_effect = pg_pool.PoolError("connection pool exhausted")
    source = ConnectionSource(pool)
    with pytest.raises(DatabaseConnectionError, match="exhausted"):
        source.acquire()
    pool.putconn.assert_not_called()


def test_open_connection_pool_sizes_and_closes():
    with patch("pg_xlsx_exporter.db.connection_pool.pg_pool.ThreadedConnectionPool") as mock_pool_cls:
        with open_connection_pool(DB_CFG, max_connections=4) as source:
            assert isinstance(source, ConnectionSource)
        mock_pool_cls.assert_called_once_with(1, 4, "host=db.local port=5433 user=hr dbname=hr password=pw")
        mock_pool_cls.return_value.closeall.assert_called_once()


def test_open_connection_pool_closes_on_error():
    with patch("pg_xlsx_exporter.db.connection_pool.pg_pool.ThreadedConnectionPool") as mock_pool_cls:
        with pytest.raises(ValueError):
            with open_connection_pool(DB_CFG, max_connections=2):
                raise ValueError("boom")
        mock_pool_cls.return_value.closeall.assert_called_once()


def test_unreachable_database():
    with patch(
        "pg_xlsx_exporter.db.connection_pool.pg_pool.ThreadedConnectionPool",
        side_effect=psycopg2.OperationalError("could not connect to server"),
    ):
        with pytest.raises(DatabaseConnectionError, match="could not connect"):
            with open_connection_pool(DB_CFG, max_connections=2):
                pass

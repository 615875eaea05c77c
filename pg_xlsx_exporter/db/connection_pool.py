from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import pool as pg_pool

from ..exceptions import DatabaseConnectionError
from ..models.config_models import DatabaseConfig

"""Pooled PostgreSQL connection source.

The export core only needs "a way to obtain a pooled connection"; this module
wraps psycopg2's ThreadedConnectionPool behind acquire()/release() and a
scoped connection() context manager that always returns the connection.

Connection parameter resolution order (.env is loaded by the CLI first, with override):
    1. DATABASE_URL / PGDSN environment variables (whole DSN)
    2. database.dsn from the YAML config
    3. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE,
       falling back to the database.* config values
"""

__all__ = [
    "ConnectionSource",
    "resolve_dsn",
    "open_connection_pool",
]

logger = logging.getLogger(__name__)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the libpq DSN from environment variables and config fallbacks."""
    dsn_env = (
        os.getenv("DATABASE_URL")
        or os.getenv("PGDSN")
        or db_cfg.dsn
    )
    if dsn_env:
        return dsn_env

    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


class ConnectionSource:
    """Thread-safe source of pooled connections.

    acquire() may be called concurrently from several threads; every acquired
    connection must be handed back through release(). Prefer connection(),
    which guarantees the release on every exit path.
    """

    def __init__(self, pool: Any) -> None:
        self._pool = pool

    def acquire(self) -> Any:
        try:
            return self._pool.getconn()
        except (pg_pool.PoolError, psycopg2.Error) as e:
            raise DatabaseConnectionError(f"cannot obtain connection: {e}") from e

    def release(self, conn: Any) -> None:
        # ThreadedConnectionPool.putconn rolls back an open transaction before reuse
        self._pool.putconn(conn)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        self._pool.closeall()


@contextmanager
def open_connection_pool(db_cfg: DatabaseConfig, max_connections: int) -> Iterator[ConnectionSource]:
    """Create a ThreadedConnectionPool sized to the worker count and close it on exit.

    Raises:
        DatabaseConnectionError: the pool cannot open its initial connection
    """
    dsn = resolve_dsn(db_cfg)
    try:
        pool = pg_pool.ThreadedConnectionPool(1, max(1, max_connections), dsn)
    except psycopg2.Error as e:
        raise DatabaseConnectionError(f"cannot connect to database: {e}") from e
    logger.debug("connection pool opened maxconn=%d", max(1, max_connections))
    source = ConnectionSource(pool)
    try:
        yield source
    finally:
        source.close()
        logger.debug("connection pool closed")

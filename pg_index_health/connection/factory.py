"""Database connection management backed by psycopg2 connection pools."""

from __future__ import annotations

import logging
import os
from typing import Any

import psycopg2
import psycopg2.extensions
import psycopg2.pool

from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.connection.url_parser import to_connect_kwargs

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 4


class PooledDataSource:
    """Lazily filled, thread-safe pool of read-only connections to one host."""

    def __init__(self, max_connections: int = DEFAULT_MAX_CONNECTIONS, **connect_kwargs: Any):
        self._pool = psycopg2.pool.ThreadedConnectionPool(0, max_connections, **connect_kwargs)

    def getconn(self) -> psycopg2.extensions.connection:
        conn = self._pool.getconn()
        try:
            if not conn.autocommit:
                conn.set_session(readonly=True, autocommit=True)
        except psycopg2.Error:
            self._pool.putconn(conn, close=True)
            raise
        return conn

    def putconn(self, conn: psycopg2.extensions.connection) -> None:
        # Broken connections are dropped instead of being handed out again.
        self._pool.putconn(conn, close=bool(conn.closed))

    def closeall(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()


class Psycopg2ConnectionFactory:
    """Create ``PgConnection`` objects whose data sources are psycopg2 pools.

    Falls back to the standard ``PGPASSWORD`` environment variable when no
    password is supplied.
    """

    def __init__(self, max_connections: int = DEFAULT_MAX_CONNECTIONS):
        self.max_connections = max_connections

    def for_url(self, pg_url: str, user_name: str, password: str | None = None) -> PgConnection:
        params = to_connect_kwargs(pg_url)
        params["user"] = user_name
        if password:
            params["password"] = password
        elif os.environ.get("PGPASSWORD"):
            params["password"] = os.environ["PGPASSWORD"]
        host = Host.of_url(pg_url)
        logger.debug("Creating data source for host %s", host)
        data_source = PooledDataSource(self.max_connections, **params)
        return PgConnection.of(data_source, host)

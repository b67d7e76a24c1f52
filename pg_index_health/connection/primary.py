"""Detection of the primary host of a cluster."""

from __future__ import annotations

import logging
from typing import Protocol

import psycopg2

from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.errors import ProbeFailed
from pg_index_health.executors import execute_query

logger = logging.getLogger(__name__)

PROBE_QUERY = "select not pg_is_in_recovery() as is_primary"


class PrimaryDeterminer(Protocol):
    def is_primary(self, pg_connection: PgConnection) -> bool:
        ...


class PrimaryHostDeterminer:
    """Probe a host to find out whether it currently accepts writes."""

    def is_primary(self, pg_connection: PgConnection) -> bool:
        """Return True if the host behind the connection is the primary.

        Hosts whose URL routes to replicas are never primary and are not
        contacted. No retries are made here.

        Raises:
            ProbeFailed: If the host could not be reached or the probe failed.
        """
        if pg_connection is None:
            raise TypeError("pgConnection cannot be null")
        host = pg_connection.host
        if not host.can_be_primary:
            return False
        try:
            rows = execute_query(pg_connection, PROBE_QUERY, lambda row: bool(row["is_primary"]))
        except psycopg2.Error as exc:
            raise ProbeFailed(host, exc) from exc
        is_primary = bool(rows) and rows[0]
        logger.debug("Host %s is %s", host, "primary" if is_primary else "not primary")
        return is_primary

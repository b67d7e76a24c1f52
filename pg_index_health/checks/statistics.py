"""Statistics maintenance queries for one host."""

from __future__ import annotations

from datetime import datetime, timezone

from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.executors import execute_query

STATS_RESET_QUERY = (
    "select stats_reset from pg_catalog.pg_stat_database where datname = current_database()"
)


class StatisticsOnHost:
    """Reads statistics collector metadata from a single cluster member."""

    def __init__(self, pg_connection: PgConnection):
        if pg_connection is None:
            raise TypeError("pgConnection cannot be null")
        self._pg_connection = pg_connection

    @property
    def host(self) -> Host:
        return self._pg_connection.host

    def last_stats_reset_timestamp(self) -> datetime | None:
        """Return when statistics were last reset, or None if they never were."""
        timestamps = execute_query(self._pg_connection, STATS_RESET_QUERY, lambda row: row["stats_reset"])
        return timestamps[0] if timestamps else None


def last_stats_reset_message(timestamp: datetime | None, now: datetime | None = None) -> str:
    if timestamp is None:
        return "Statistics have never been reset on this host"
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return f"Last statistics reset on this host was {(now - timestamp).days} days ago ({timestamp.isoformat()})"

"""Connection to a whole cluster with a periodically refreshed primary."""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection, Iterable

from pg_index_health.connection.credentials import ConnectionCredentials
from pg_index_health.connection.pg_connection import PgConnection, PgConnectionFactory
from pg_index_health.connection.primary import PrimaryDeterminer, PrimaryHostDeterminer
from pg_index_health.connection.url_parser import extract_name_with_port_and_url_for_each_host
from pg_index_health.errors import InvalidHostConfiguration

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_REFRESH_INTERVAL = 30.0


class ClusterConnection:
    """All members of a cluster plus a cached pointer to the current primary.

    With two or more members, a background thread re-probes every member each
    ``primary_refresh_interval`` seconds and moves the cached pointer to any
    member that reports being primary. Failed probes are logged and skipped;
    the last known primary is kept rather than cleared.

    If several members report being primary in the same cycle (split brain
    during a failover), the last one in iteration order wins. That is the
    observed behavior, not a guarantee: callers that need strict
    single-primary semantics must check for themselves.

    Use ``close()`` (or a ``with`` block) to stop the refresher and release the
    members' data sources. The object must not be used afterwards.
    """

    def __init__(
        self,
        connection_to_primary: PgConnection,
        connections_to_all_hosts: Collection[PgConnection],
        primary_refresh_interval: float = DEFAULT_PRIMARY_REFRESH_INTERVAL,
        primary_host_determiner: PrimaryDeterminer | None = None,
    ):
        if connection_to_primary is None:
            raise TypeError("connectionToPrimary cannot be null")
        if connections_to_all_hosts is None:
            raise TypeError("connectionsToAllHostsInCluster cannot be null")
        if primary_refresh_interval <= 0:
            raise InvalidHostConfiguration("primaryRefreshInterval must be positive")
        members = frozenset(connections_to_all_hosts)
        if connection_to_primary not in members:
            raise InvalidHostConfiguration(
                "connectionsToAllHostsInCluster have to contain a connection to the primary"
            )
        self._connections_to_all_hosts = members
        self._cached_primary = connection_to_primary
        self._primary_lock = threading.Lock()
        self._primary_refresh_interval = primary_refresh_interval
        self._primary_host_determiner = primary_host_determiner or PrimaryHostDeterminer()
        self._stop_event = threading.Event()
        self._refresher: threading.Thread | None = None
        self._closed = False
        self._start_primary_updater()

    @classmethod
    def of(cls, connection_to_primary: PgConnection, **kwargs) -> ClusterConnection:
        """Build a single-member cluster."""
        return cls(connection_to_primary, {connection_to_primary}, **kwargs)

    @property
    def connection_to_primary(self) -> PgConnection:
        with self._primary_lock:
            return self._cached_primary

    @property
    def connections_to_all_hosts(self) -> frozenset[PgConnection]:
        return self._connections_to_all_hosts

    @property
    def primary_refresh_interval(self) -> float:
        return self._primary_refresh_interval

    @property
    def is_refreshing(self) -> bool:
        return self._refresher is not None and self._refresher.is_alive()

    def close(self) -> None:
        """Stop the background refresher and close every member's data source."""
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()
        if self._refresher is not None and self._refresher is not threading.current_thread():
            self._refresher.join()
        for pg_connection in self._connections_to_all_hosts:
            pg_connection.data_source.closeall()

    def __enter__(self) -> ClusterConnection:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _start_primary_updater(self) -> None:
        if len(self._connections_to_all_hosts) < 2:
            logger.debug("Single node. There's no point to monitor primary node.")
            return
        self._refresher = threading.Thread(
            target=self._run_primary_updater,
            name="pg-index-health-primary-updater",
            daemon=True,
        )
        self._refresher.start()

    def _run_primary_updater(self) -> None:
        # Fixed delay between the end of one cycle and the start of the next.
        while not self._stop_event.wait(self._primary_refresh_interval):
            self._update_connection_to_primary()

    def _update_connection_to_primary(self) -> None:
        for pg_connection in self._connections_to_all_hosts:
            if self._stop_event.is_set():
                return
            try:
                if self._primary_host_determiner.is_primary(pg_connection):
                    with self._primary_lock:
                        self._cached_primary = pg_connection
                    logger.debug("Current primary is %s", pg_connection.host.pg_url)
            except Exception:
                logger.warning(
                    "Exception during primary detection for host %s", pg_connection.host, exc_info=True
                )


class ClusterConnectionFactory:
    """Build a ``ClusterConnection`` from credentials listing one or more URLs."""

    def __init__(
        self,
        connection_factory: PgConnectionFactory,
        primary_host_determiner: PrimaryDeterminer | None = None,
    ):
        if connection_factory is None:
            raise TypeError("pgConnectionFactory cannot be null")
        self._connection_factory = connection_factory
        self._primary_host_determiner = primary_host_determiner or PrimaryHostDeterminer()

    def of(
        self,
        credentials: ConnectionCredentials,
        primary_refresh_interval: float = DEFAULT_PRIMARY_REFRESH_INTERVAL,
    ) -> ClusterConnection:
        """Connect to every host named by the credentials and find the primary.

        Raises:
            InvalidHostConfiguration: If no host reports being primary.
            ProbeFailed: If a host could not be probed.
        """
        if credentials is None:
            raise TypeError("credentials cannot be null")
        connections: dict[str, PgConnection] = {}
        for url in credentials.connection_urls:
            self._add_connections_for_all_hosts(connections, url, credentials)
        connection_to_primary = self._find_connection_to_primary(connections.values())
        return ClusterConnection(
            connection_to_primary,
            list(connections.values()),
            primary_refresh_interval=primary_refresh_interval,
            primary_host_determiner=self._primary_host_determiner,
        )

    def _add_connections_for_all_hosts(
        self,
        connections: dict[str, PgConnection],
        any_url: str,
        credentials: ConnectionCredentials,
    ) -> None:
        for name_with_port, url in extract_name_with_port_and_url_for_each_host(any_url):
            if name_with_port not in connections:
                connections[name_with_port] = self._connection_factory.for_url(
                    url, credentials.user_name, credentials.password
                )

    def _find_connection_to_primary(self, connections: Iterable[PgConnection]) -> PgConnection:
        for pg_connection in connections:
            if self._primary_host_determiner.is_primary(pg_connection):
                return pg_connection
        hosts = ", ".join(str(c.host) for c in connections)
        raise InvalidHostConfiguration(f"Connection to primary host not found in [{hosts}]")

"""Check engine: run a diagnostic on the right hosts and merge the results."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from pg_index_health.checks.extractors import EXTRACTORS, Extractor
from pg_index_health.checks.host import CheckOnHost, ExclusionFilter
from pg_index_health.checks.merge import MERGE_STRATEGIES, MergeStrategy, validate_merge_strategies
from pg_index_health.checks.sql_reader import SqlQueryReader
from pg_index_health.checks.statistics import StatisticsOnHost, last_stats_reset_message
from pg_index_health.connection.cluster import ClusterConnection
from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.diagnostics import DIAGNOSTICS, Diagnostic, lookup_diagnostic
from pg_index_health.errors import RuleExecutionFailed
from pg_index_health.models import PgContext

logger = logging.getLogger(__name__)

# Diagnostics whose results are only meaningful relative to the last statistics reset.
STATISTICS_SENSITIVE_DIAGNOSTICS = frozenset({"unused_indexes"})


class CheckEngine:
    """Dispatch diagnostics by topology.

    ``ON_PRIMARY`` diagnostics run once, on the cluster's current primary.
    ``ACROSS_CLUSTER`` diagnostics run on every member; the per-host lists are
    combined with the diagnostic's merge strategy. Results taken on different
    hosts are independent snapshots, not a consistent cross-host view.

    The registries are validated when the engine is built: a cluster-wide
    diagnostic without a merge strategy, or any diagnostic without an
    extractor, is rejected up front rather than on first use. A diagnostic
    passed to ``run`` that is not part of the registry is validated the same
    way before any host is queried.
    """

    def __init__(
        self,
        sql_reader: SqlQueryReader | None = None,
        extractors: Mapping[str, Extractor] | None = None,
        merge_strategies: Mapping[str, MergeStrategy] | None = None,
        diagnostics: Mapping[str, Diagnostic] | None = None,
    ):
        self._sql_reader = sql_reader or SqlQueryReader()
        self._extractors = dict(EXTRACTORS if extractors is None else extractors)
        self._merge_strategies = dict(MERGE_STRATEGIES if merge_strategies is None else merge_strategies)
        self._diagnostics = dict(DIAGNOSTICS if diagnostics is None else diagnostics)
        self._validate(self._diagnostics.values())
        self._checks_on_hosts: dict[Host, CheckOnHost] = {}
        self._statistics_on_hosts: dict[Host, StatisticsOnHost] = {}
        self._lock = threading.Lock()

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return sorted(self._diagnostics.values(), key=lambda d: d.name)

    def get_diagnostic(self, name: str) -> Diagnostic:
        return lookup_diagnostic(self._diagnostics, name)

    def run(
        self,
        cluster: ClusterConnection,
        diagnostic: Diagnostic | str,
        pg_context: PgContext | None = None,
        exclude: ExclusionFilter | None = None,
    ) -> list[Any]:
        """Execute one diagnostic against the cluster.

        Args:
            cluster: Cluster to check.
            diagnostic: Diagnostic or its name.
            pg_context: Schema and thresholds; defaults to ``public``.
            exclude: Predicate; records it returns True for are dropped.

        Returns:
            The violations found, after merging and exclusion.

        Raises:
            KeyError: If a name is given that is not registered.
            MissingMergeStrategy: If an unregistered cluster-wide diagnostic
                has no merge strategy.
            ValueError: If an unregistered diagnostic has no extractor.
            RuleExecutionFailed: If the query failed on any of the hosts.
        """
        diagnostic = self._resolve(diagnostic)
        pg_context = pg_context or PgContext()
        if diagnostic.is_across_cluster:
            return self._run_across_cluster(cluster, diagnostic, pg_context, exclude)
        return self._run_on_primary(cluster, diagnostic, pg_context, exclude)

    def _resolve(self, diagnostic: Diagnostic | str) -> Diagnostic:
        if isinstance(diagnostic, str):
            return self.get_diagnostic(diagnostic)
        if self._diagnostics.get(diagnostic.name) != diagnostic:
            self._validate([diagnostic])
        return diagnostic

    def _validate(self, diagnostics: Iterable[Diagnostic]) -> None:
        diagnostics = list(diagnostics)
        validate_merge_strategies(diagnostics, self._merge_strategies)
        missing = sorted(d.name for d in diagnostics if d.name not in self._extractors)
        if missing:
            raise ValueError(f"No extractor registered for diagnostics: {', '.join(missing)}")

    def _run_on_primary(
        self,
        cluster: ClusterConnection,
        diagnostic: Diagnostic,
        pg_context: PgContext,
        exclude: ExclusionFilter | None,
    ) -> list[Any]:
        check_on_host = self._compute_check_for_host_if_need(cluster.connection_to_primary)
        logger.info("Going to execute %s on primary host %s", diagnostic.name, check_on_host.host)
        try:
            return check_on_host.check(diagnostic, pg_context, exclude)
        except Exception as exc:
            raise RuleExecutionFailed(diagnostic, {check_on_host.host: exc}) from exc

    def _run_across_cluster(
        self,
        cluster: ClusterConnection,
        diagnostic: Diagnostic,
        pg_context: PgContext,
        exclude: ExclusionFilter | None,
    ) -> list[Any]:
        results_on_hosts: list[list[Any]] = []
        failures: dict[Host, Exception] = {}
        for pg_connection in cluster.connections_to_all_hosts:
            check_on_host = self._compute_check_for_host_if_need(pg_connection)
            if diagnostic.name in STATISTICS_SENSITIVE_DIAGNOSTICS:
                self._log_last_stats_reset(pg_connection)
            logger.info("Going to execute %s on host %s", diagnostic.name, check_on_host.host)
            try:
                results_on_hosts.append(check_on_host.do_check(diagnostic, pg_context))
            except Exception as exc:
                failures[check_on_host.host] = exc
        if failures:
            raise RuleExecutionFailed(diagnostic, failures) from next(iter(failures.values()))
        merged = self._merge_strategies[diagnostic.name](results_on_hosts)
        return [item for item in merged if not (exclude and exclude(item))]

    def _log_last_stats_reset(self, pg_connection: PgConnection) -> None:
        statistics = self._compute_statistics_for_host_if_need(pg_connection)
        try:
            timestamp = statistics.last_stats_reset_timestamp()
        except Exception as exc:
            logger.warning("Could not read last statistics reset on host %s: %s", statistics.host, exc)
            return
        logger.info("[%s] %s", statistics.host, last_stats_reset_message(timestamp))

    def _compute_check_for_host_if_need(self, pg_connection: PgConnection) -> CheckOnHost:
        host = pg_connection.host
        with self._lock:
            check_on_host = self._checks_on_hosts.get(host)
            if check_on_host is None:
                check_on_host = CheckOnHost(pg_connection, self._sql_reader, self._extractors)
                self._checks_on_hosts[host] = check_on_host
            return check_on_host

    def _compute_statistics_for_host_if_need(self, pg_connection: PgConnection) -> StatisticsOnHost:
        host = pg_connection.host
        with self._lock:
            statistics = self._statistics_on_hosts.get(host)
            if statistics is None:
                statistics = StatisticsOnHost(pg_connection)
                self._statistics_on_hosts[host] = statistics
            return statistics

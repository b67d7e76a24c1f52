"""Scanner orchestrator: runs every diagnostic against a cluster, collects results."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pg_index_health.checks.engine import CheckEngine
from pg_index_health.checks.host import ExclusionFilter
from pg_index_health.connection.cluster import ClusterConnection
from pg_index_health.connection.url_parser import extract_database_name
from pg_index_health.errors import RuleExecutionFailed
from pg_index_health.models import CheckResult, PgContext, ScanReport

logger = logging.getLogger(__name__)


def run_scan(
    cluster: ClusterConnection,
    pg_context: PgContext | None = None,
    engine: CheckEngine | None = None,
    exclude: set[str] | None = None,
    include_only: set[str] | None = None,
    exclusion_filter: ExclusionFilter | None = None,
) -> ScanReport:
    """Execute all registered diagnostics against the cluster.

    Args:
        cluster: Cluster to scan.
        pg_context: Schema and thresholds; defaults to the ``public`` schema.
        engine: Check engine to use; a default one is built when omitted.
        exclude: Optional set of diagnostic names to skip.
        include_only: Optional set of diagnostic names to run (whitelist mode).
        exclusion_filter: Optional predicate dropping individual violations.

    Returns:
        ScanReport with one result per diagnostic. A diagnostic whose query
        failed is recorded with its error and does not stop the scan.
    """
    pg_context = pg_context or PgContext()
    engine = engine or CheckEngine()
    primary = cluster.connection_to_primary.host
    report = ScanReport(
        database=_database_name(primary.pg_url),
        primary_host=str(primary),
        hosts=sorted(str(c.host) for c in cluster.connections_to_all_hosts),
        schema_name=pg_context.schema_name,
        timestamp=datetime.now(timezone.utc),
    )

    diagnostics = [
        d for d in engine.diagnostics
        if (include_only is None or d.name in include_only) and d.name not in (exclude or set())
    ]
    total = len(diagnostics)
    logger.info("Running %d diagnostics against %s (schema %s)", total, report.database, pg_context.schema_name)

    for i, diagnostic in enumerate(diagnostics, 1):
        logger.debug("[%d/%d] %s (%s)", i, total, diagnostic.name, diagnostic.topology.value)
        result = CheckResult(check_name=diagnostic.name, topology=diagnostic.topology.value)
        try:
            result.violations = engine.run(cluster, diagnostic, pg_context, exclusion_filter)
        except RuleExecutionFailed as exc:
            result.error = str(exc)
            logger.error("%s", exc)
        report.results.append(result)

    logger.info(
        "Done. %d violation(s) in %d of %d diagnostics, %d failed.",
        report.violations_count,
        report.checks_total - report.checks_passed - report.checks_failed,
        report.checks_total,
        report.checks_failed,
    )
    return report


def _database_name(pg_url: str) -> str:
    return extract_database_name([pg_url]).lstrip("/")

"""Tests for pg_index_health.scanner: running every diagnostic against a cluster."""

from __future__ import annotations

import psycopg2
import pytest

from conftest import FakePrimaryDeterminer, make_connection

from pg_index_health.checks.engine import CheckEngine
from pg_index_health.connection.cluster import ClusterConnection
from pg_index_health.diagnostics import DIAGNOSTICS
from pg_index_health.models import PgContext
from pg_index_health.scanner import run_scan


@pytest.fixture
def cluster():
    h1 = make_connection("h1", responses={
        "indisvalid": [{"table_name": "orders", "index_name": "orders_bad_idx", "index_size": 8192}],
        "pg_stat_user_indexes": [
            {"table_name": "orders", "index_name": "orders_unused_idx", "index_size": 8192, "index_scans": 0},
        ],
    })
    h2 = make_connection("h2", responses={
        "pg_stat_user_indexes": [
            {"table_name": "orders", "index_name": "orders_unused_idx", "index_size": 8192, "index_scans": 0},
        ],
    })
    connection = ClusterConnection(
        h1, [h1, h2], primary_refresh_interval=60, primary_host_determiner=FakePrimaryDeterminer({"h1": True})
    )
    yield connection
    connection.close()


def result_for(report, name):
    return next(r for r in report.results if r.check_name == name)


class TestRunScan:
    def test_every_diagnostic_reported(self, cluster):
        report = run_scan(cluster)
        assert report.checks_total == len(DIAGNOSTICS)
        assert [r.check_name for r in report.results] == sorted(DIAGNOSTICS)

    def test_report_meta(self, cluster):
        report = run_scan(cluster, PgContext(schema_name="Sales"))
        assert report.database == "postgres"
        assert report.primary_host == "h1:5432"
        assert report.hosts == ["h1:5432", "h2:5432"]
        assert report.schema_name == "sales"
        assert report.timestamp.tzinfo is not None

    def test_violations_collected(self, cluster):
        report = run_scan(cluster)
        assert result_for(report, "invalid_indexes").violations_count == 1
        assert result_for(report, "unused_indexes").violations_count == 1
        assert result_for(report, "tables_without_primary_key").passed
        assert report.violations_count == 2

    def test_topology_recorded(self, cluster):
        report = run_scan(cluster)
        assert result_for(report, "unused_indexes").topology == "ACROSS_CLUSTER"
        assert result_for(report, "invalid_indexes").topology == "ON_PRIMARY"

    def test_exclude(self, cluster):
        report = run_scan(cluster, exclude={"invalid_indexes", "unused_indexes"})
        names = {r.check_name for r in report.results}
        assert "invalid_indexes" not in names
        assert report.checks_total == len(DIAGNOSTICS) - 2
        assert report.violations_count == 0

    def test_include_only(self, cluster):
        report = run_scan(cluster, include_only={"unused_indexes"})
        assert [r.check_name for r in report.results] == ["unused_indexes"]

    def test_include_only_and_exclude(self, cluster):
        report = run_scan(cluster, include_only={"unused_indexes", "invalid_indexes"}, exclude={"unused_indexes"})
        assert [r.check_name for r in report.results] == ["invalid_indexes"]

    def test_exclusion_filter(self, cluster):
        report = run_scan(cluster, exclusion_filter=lambda item: item.table_name == "orders")
        assert report.violations_count == 0

    def test_failed_diagnostic_does_not_stop_scan(self, cluster, caplog):
        h2 = next(c for c in cluster.connections_to_all_hosts if c.host.name == "h2")
        h2.data_source.responses = {"pg_stat_user_indexes": psycopg2.OperationalError("timeout")}
        report = run_scan(cluster)
        failed = result_for(report, "unused_indexes")
        assert not failed.passed
        assert "h2:5432" in failed.error
        assert report.checks_failed == 1
        assert report.checks_total == len(DIAGNOSTICS)
        assert "unused_indexes failed" in caplog.text

    def test_custom_engine(self, cluster):
        engine = CheckEngine(diagnostics={"invalid_indexes": DIAGNOSTICS["invalid_indexes"]}, merge_strategies={})
        report = run_scan(cluster, engine=engine)
        assert [r.check_name for r in report.results] == ["invalid_indexes"]

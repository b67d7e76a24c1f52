"""Tests for pg_index_health.checks.statistics: last statistics reset per host."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import psycopg2
import pytest

from conftest import make_connection

from pg_index_health.checks.statistics import STATS_RESET_QUERY, StatisticsOnHost, last_stats_reset_message

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestStatisticsOnHost:
    def test_reset_timestamp(self):
        reset = NOW - timedelta(days=3)
        connection = make_connection("h1", responses={"pg_stat_database": [{"stats_reset": reset}]})
        assert StatisticsOnHost(connection).last_stats_reset_timestamp() == reset
        assert connection.data_source.queries == [(STATS_RESET_QUERY, None)]

    @pytest.mark.parametrize("rows", [[], [{"stats_reset": None}]])
    def test_never_reset(self, rows):
        connection = make_connection("h1", responses={"pg_stat_database": rows})
        assert StatisticsOnHost(connection).last_stats_reset_timestamp() is None

    def test_errors_propagate(self):
        connection = make_connection("h1", responses={"pg_stat_database": psycopg2.OperationalError("boom")})
        with pytest.raises(psycopg2.OperationalError):
            StatisticsOnHost(connection).last_stats_reset_timestamp()
        assert connection.data_source.borrowed == connection.data_source.returned == 1

    def test_host(self):
        assert str(StatisticsOnHost(make_connection("h9", port=6432)).host) == "h9:6432"

    def test_null_connection(self):
        with pytest.raises(TypeError):
            StatisticsOnHost(None)


class TestLastStatsResetMessage:
    def test_never_reset(self):
        assert last_stats_reset_message(None, NOW) == "Statistics have never been reset on this host"

    def test_days_ago(self):
        message = last_stats_reset_message(NOW - timedelta(days=123), NOW)
        assert message == "Last statistics reset on this host was 123 days ago (2025-10-29T12:00:00+00:00)"

    def test_naive_timestamp_taken_as_utc(self):
        message = last_stats_reset_message(datetime(2026, 2, 27, 12, 0, 0), NOW)
        assert message.startswith("Last statistics reset on this host was 2 days ago (")

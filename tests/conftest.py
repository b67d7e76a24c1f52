"""Shared fixtures and fakes for pg-index-health tests.

No live database is needed: ``FakeDataSource`` plays the role of a
psycopg2 pool and answers queries from a script.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.models import CheckResult, ScanReport, Table


class FakeCursor:
    def __init__(self, data_source: FakeDataSource, cursor_factory=None):
        self._data_source = data_source
        self.cursor_factory = cursor_factory
        self._rows: list = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql, params=None):
        self._rows = self._data_source.answer(sql, params)

    def fetchall(self):
        return list(self._rows)


class FakeDbConnection:
    def __init__(self, data_source: FakeDataSource):
        self._data_source = data_source
        self.closed = 0

    def cursor(self, cursor_factory=None):
        return FakeCursor(self._data_source, cursor_factory)


class FakeDataSource:
    """Scripted stand-in for a psycopg2 connection pool.

    ``responses`` maps a SQL substring to either a list of row dicts or an
    exception instance to raise. Unmatched queries return no rows.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = dict(responses or {})
        self.queries: list[tuple[str, object]] = []
        self.borrowed = 0
        self.returned = 0
        self.closed = False
        self._lock = threading.Lock()

    def answer(self, sql, params):
        with self._lock:
            self.queries.append((sql, params))
            responses = list(self.responses.items())
        for fragment, response in responses:
            if fragment in sql:
                if isinstance(response, BaseException):
                    raise response
                return response
        return []

    def getconn(self):
        self.borrowed += 1
        return FakeDbConnection(self)

    def putconn(self, conn):
        self.returned += 1

    def closeall(self):
        self.closed = True


class FakePrimaryDeterminer:
    """Primary determiner answering from a mutable ``{host name: bool | Exception}`` map."""

    def __init__(self, answers: dict | None = None):
        self.answers = dict(answers or {})
        self.calls: list[Host] = []
        self._lock = threading.Lock()

    def is_primary(self, pg_connection):
        with self._lock:
            self.calls.append(pg_connection.host)
            answer = self.answers.get(pg_connection.host.name, False)
        if isinstance(answer, BaseException):
            raise answer
        return answer


def make_host(name: str = "localhost", port: int = 5432, replica: bool = False) -> Host:
    """Factory for single-host Host instances with sensible defaults."""
    target = "secondary" if replica else "any"
    return Host.of_url(f"postgresql://{name}:{port}/postgres?targetServerType={target}")


def make_connection(
    name: str = "localhost",
    port: int = 5432,
    responses: dict | None = None,
    replica: bool = False,
) -> PgConnection:
    """Factory for a PgConnection backed by a FakeDataSource."""
    return PgConnection.of(FakeDataSource(responses), make_host(name, port, replica))


@pytest.fixture
def empty_report() -> ScanReport:
    """ScanReport with no results."""
    return ScanReport(
        database="testdb",
        primary_host="h1:5432",
        hosts=["h1:5432", "h2:5432"],
        schema_name="public",
        timestamp=datetime(2026, 1, 27, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_report(empty_report) -> ScanReport:
    """ScanReport with a passing, a violating and a failed diagnostic."""
    report = empty_report
    report.results.append(CheckResult(check_name="invalid_indexes", topology="ON_PRIMARY"))
    report.results.append(CheckResult(
        check_name="tables_without_primary_key",
        topology="ON_PRIMARY",
        violations=[Table("orders", 8192), Table("events", 16384)],
    ))
    report.results.append(CheckResult(
        check_name="unused_indexes",
        topology="ACROSS_CLUSTER",
        error="Diagnostic unused_indexes failed on 1 host(s) [h2:5432]: OperationalError: timeout",
    ))
    return report

"""Running diagnostics against one host."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pg_index_health.checks.extractors import Extractor
from pg_index_health.checks.sql_reader import SqlQueryReader
from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.diagnostics import Diagnostic
from pg_index_health.executors import execute_query_with_context
from pg_index_health.models import PgContext

ExclusionFilter = Callable[[Any], bool]


class CheckOnHost:
    """Executes diagnostics on a single cluster member."""

    def __init__(
        self,
        pg_connection: PgConnection,
        sql_reader: SqlQueryReader,
        extractors: Mapping[str, Extractor],
    ):
        if pg_connection is None:
            raise TypeError("pgConnection cannot be null")
        self._pg_connection = pg_connection
        self._sql_reader = sql_reader
        self._extractors = extractors

    @property
    def host(self) -> Host:
        return self._pg_connection.host

    def check(
        self,
        diagnostic: Diagnostic,
        pg_context: PgContext,
        exclude: ExclusionFilter | None = None,
    ) -> list[Any]:
        """Run the diagnostic and drop the records ``exclude`` returns True for."""
        return [item for item in self.do_check(diagnostic, pg_context) if not (exclude and exclude(item))]

    def do_check(self, diagnostic: Diagnostic, pg_context: PgContext) -> list[Any]:
        sql_query = self._sql_reader.get_query(diagnostic.sql_query_file_name)
        return execute_query_with_context(
            self._pg_connection,
            pg_context,
            diagnostic.query_kind,
            sql_query,
            self._extractors[diagnostic.name],
        )

"""Execution of SQL queries against a single cluster member."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import psycopg2.extras

from pg_index_health.connection.pg_connection import PgConnection
from pg_index_health.diagnostics import QueryKind
from pg_index_health.models import PgContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

RowExtractor = Callable[[Mapping[str, Any]], T]


def execute_query(
    pg_connection: PgConnection,
    sql_query: str,
    extractor: RowExtractor[T],
    params: Mapping[str, Any] | None = None,
) -> list[T]:
    """Run a query on the connection's host and map every row.

    A connection is borrowed from the host's data source for the duration of
    the query and always handed back. Database errors propagate unchanged.
    """
    if sql_query is None:
        raise TypeError("sqlQuery cannot be null")
    logger.debug("Executing query on %s with params %s: %s", pg_connection.host, params, sql_query)
    data_source = pg_connection.data_source
    conn = data_source.getconn()
    try:
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql_query, params)
            rows = cur.fetchall()
    finally:
        data_source.putconn(conn)
    result = [extractor(row) for row in rows]
    logger.debug("Query completed with %d row(s)", len(result))
    return result


def query_parameters(pg_context: PgContext, query_kind: QueryKind) -> dict[str, Any]:
    params: dict[str, Any] = {"schema_name_param": pg_context.schema_name}
    if query_kind is QueryKind.BLOAT:
        params["bloat_percentage_threshold"] = pg_context.bloat_percentage_threshold
    elif query_kind is QueryKind.REMAINING_PERCENTAGE:
        params["remaining_percentage_threshold"] = pg_context.remaining_percentage_threshold
    return params


def execute_query_with_context(
    pg_connection: PgConnection,
    pg_context: PgContext,
    query_kind: QueryKind,
    sql_query: str,
    extractor: RowExtractor[T],
) -> list[T]:
    """Run a diagnostic query, binding the parameters its kind requires."""
    return execute_query(pg_connection, sql_query, extractor, query_parameters(pg_context, query_kind))

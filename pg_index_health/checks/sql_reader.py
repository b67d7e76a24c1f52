"""Loading of diagnostic SQL queries from package resources."""

from __future__ import annotations

import threading
from importlib import resources

SQL_PACKAGE = "pg_index_health.sql"


class SqlQueryReader:
    """Read named SQL resources and prepare them for psycopg2.

    Queries use ``:name`` placeholders; they are rewritten once to the
    ``%(name)s`` style psycopg2 expects and cached.
    """

    def __init__(self, package: str = SQL_PACKAGE):
        self._package = package
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_query(self, file_name: str) -> str:
        """Return the prepared query stored in ``file_name``.

        Raises:
            FileNotFoundError: If the package has no such resource.
        """
        with self._lock:
            query = self._cache.get(file_name)
            if query is None:
                query = parse_named_parameters(self._read(file_name))
                self._cache[file_name] = query
            return query

    def _read(self, file_name: str) -> str:
        resource = resources.files(self._package).joinpath(file_name)
        if not resource.is_file():
            raise FileNotFoundError(f"SQL query file {file_name} not found in {self._package}")
        return resource.read_text(encoding="utf-8")


def parse_named_parameters(sql_query: str) -> str:
    """Convert ``:name`` placeholders into psycopg2 ``%(name)s`` placeholders.

    Text inside quotes, comments and square brackets is copied untouched, as
    are ``::`` casts. Literal ``%`` characters are doubled so psycopg2 does
    not treat them as placeholders.
    """
    if not sql_query or not sql_query.strip():
        raise ValueError("originalSqlQuery cannot be blank or empty")
    result = []
    length = len(sql_query)
    in_single_quotes = in_double_quotes = False
    in_line_comment = in_block_comment = in_brackets = False
    i = 0
    while i < length:
        ch = sql_query[i]
        nxt = sql_query[i + 1] if i + 1 < length else ""
        if ch == "%":
            result.append("%%")
            i += 1
            continue
        if in_single_quotes:
            in_single_quotes = ch != "'"
        elif in_double_quotes:
            in_double_quotes = ch != '"'
        elif in_block_comment:
            if ch == "*" and nxt == "/":
                in_block_comment = False
                result.append("*/")
                i += 2
                continue
        elif in_line_comment:
            in_line_comment = ch != "\n"
        elif in_brackets:
            in_brackets = ch != "]"
        elif ch == "'":
            in_single_quotes = True
        elif ch == '"':
            in_double_quotes = True
        elif ch == "[":
            in_brackets = True
        elif ch == "/" and nxt == "*":
            in_block_comment = True
            result.append("/*")
            i += 2
            continue
        elif ch == "-" and nxt == "-":
            in_line_comment = True
        elif ch == ":" and nxt == ":":
            result.append("::")
            i += 2
            continue
        elif ch == ":" and (nxt.isalpha() or nxt == "_"):
            j = i + 2
            while j < length and (sql_query[j].isalnum() or sql_query[j] == "_"):
                j += 1
            result.append(f"%({sql_query[i + 1:j]})s")
            i = j
            continue
        result.append(ch)
        i += 1
    return "".join(result)

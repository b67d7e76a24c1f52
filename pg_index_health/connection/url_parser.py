"""Parsing and building of multi-host PostgreSQL connection URLs.

Connection URLs follow the multi-host convention used by PostgreSQL drivers::

    postgresql://host-1:6432,host-2:6432/db_name?targetServerType=primary

``targetServerType`` is the routing parameter: ``primary``/``master`` target
the writable node, ``secondary``/``slave`` target replicas and ``any`` lets
the driver pick whichever node answers first. The short headers
``postgres://`` and ``pg://`` are accepted as aliases of ``postgresql://``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, unquote

from pg_index_health.errors import MalformedConnectionString

logger = logging.getLogger(__name__)

URL_HEADER = "postgresql://"
URL_HEADERS = (URL_HEADER, "postgres://", "pg://")
DEFAULT_PORT = 5432

DEFAULT_URL_PARAMETERS = {
    "targetServerType": "primary",
    "hostRecheckSeconds": "2",
    "connectTimeout": "1",
    "socketTimeout": "600",
}

_REPLICA_ROUTING = re.compile(r"[?&]targetServerType=(?:slave|secondary)(?=&|$)")
_PRIMARY_ROUTING = re.compile(r"(?<=[?&])targetServerType=(?:primary|master)(?=&|$)")

# Driver-level parameter names translated to their libpq spelling.
_LIBPQ_RENAMES = {
    "connectTimeout": "connect_timeout",
    "ApplicationName": "application_name",
    "applicationName": "application_name",
    "targetServerType": "target_session_attrs",
}

_TARGET_SESSION_ATTRS = {
    "any": "any",
    "primary": "primary",
    "master": "primary",
    "secondary": "standby",
    "slave": "standby",
    "preferSecondary": "prefer-standby",
    "preferSlave": "prefer-standby",
}

_LIBPQ_PARAMETERS = frozenset({
    "application_name",
    "channel_binding",
    "connect_timeout",
    "gssencmode",
    "keepalives",
    "keepalives_count",
    "keepalives_idle",
    "keepalives_interval",
    "options",
    "sslcert",
    "sslkey",
    "sslmode",
    "sslrootcert",
    "target_session_attrs",
})


def url_header(pg_url: str) -> str:
    """Return the header (scheme and ``//``) of a valid URL.

    Raises:
        MalformedConnectionString: If the URL is blank or has an unknown header.
    """
    if not pg_url or not pg_url.strip():
        raise MalformedConnectionString("pgUrl cannot be blank or empty")
    for header in URL_HEADERS:
        if pg_url.startswith(header):
            return header
    raise MalformedConnectionString(f"pgUrl has invalid format: {pg_url!r}")


def is_replica_url(pg_url: str) -> bool:
    """Check whether the URL routes connections to replicas only."""
    url_header(pg_url)
    return _REPLICA_ROUTING.search(pg_url) is not None


def extract_host_names(pg_url: str) -> list[tuple[str, int]]:
    """Return the sorted, de-duplicated ``(host, port)`` pairs of a URL."""
    pairs = {_split_host_and_port(h, pg_url) for h in _host_entries(pg_url)}
    return sorted(pairs)


def extract_name_with_port_and_url_for_each_host(pg_url: str) -> list[tuple[str, str]]:
    """Build a single-host URL for every host of a (possibly multi-host) URL.

    Returns a sorted list of ``("host:port", url)`` pairs. Each single-host URL
    keeps the database name and parameters of the input, except that a
    primary-only routing parameter is relaxed to ``targetServerType=any`` so
    the URL can also be used to reach a replica.
    """
    header = url_header(pg_url)
    db_name_with_params = _convert_to_replica_connection_string(_db_name_with_params(pg_url))
    names = sorted({
        _name_with_port(*_split_host_and_port(h, pg_url)) for h in _host_entries(pg_url)
    })
    return [(name, header + name + db_name_with_params) for name in names]


def extract_database_name(pg_urls: Iterable[str]) -> str:
    """Extract the database name (with its leading slash) shared by the given URLs."""
    urls = sorted(pg_urls)
    if not urls:
        raise MalformedConnectionString("pgUrls have to contain at least one url")
    pg_url = urls[0]
    db_name_with_params = _db_name_with_params(pg_url)
    if not db_name_with_params:
        return "/"
    question_mark = db_name_with_params.find("?")
    if question_mark == 0:
        return "/"
    if question_mark > 1:
        return db_name_with_params[:question_mark]
    if question_mark == 1:
        raise MalformedConnectionString(f"pgUrls contains invalid connection string {pg_url}")
    return db_name_with_params


def build_common_url(
    pg_urls: Iterable[str],
    url_parameters: Mapping[str, str] | None = None,
) -> str:
    """Merge several URLs that share one database into one multi-host URL.

    Hosts are de-duplicated and sorted. The query string is the union of
    ``url_parameters`` and ``DEFAULT_URL_PARAMETERS``; caller values win.
    """
    urls = sorted(set(pg_urls))
    if not urls:
        raise MalformedConnectionString("pgUrls have to contain at least one url")
    header = url_header(urls[0])
    names = set()
    for pg_url in urls:
        url_header(pg_url)
        names.update(_name_with_port(*_split_host_and_port(h, pg_url)) for h in _host_entries(pg_url))
    return (
        header
        + ",".join(sorted(names))
        + extract_database_name(urls)
        + construct_url_parameters(url_parameters or {})
    )


def construct_url_parameters(url_parameters: Mapping[str, str]) -> str:
    """Render the query string, prefixed by ``?``, of a merged URL."""
    joint = dict(url_parameters)
    for key, value in DEFAULT_URL_PARAMETERS.items():
        joint.setdefault(key, value)
    return "?" + "&".join(f"{k}={v}" for k, v in sorted(joint.items()))


def to_connect_kwargs(pg_url: str) -> dict[str, str]:
    """Translate a URL into keyword arguments for ``psycopg2.connect``.

    Multiple hosts are passed the libpq way (comma separated ``host`` and
    ``port``). Parameters that only make sense to other drivers are dropped.
    """
    hosts = extract_host_names(pg_url)
    kwargs = {
        "host": ",".join(h for h, _ in hosts),
        "port": ",".join(str(p) for _, p in hosts),
    }
    dbname = unquote(extract_database_name([pg_url]).lstrip("/"))
    if dbname:
        kwargs["dbname"] = dbname

    query = _db_name_with_params(pg_url).partition("?")[2]
    for key, value in parse_qsl(query, keep_blank_values=True):
        name = _LIBPQ_RENAMES.get(key, key)
        if name == "target_session_attrs":
            value = _TARGET_SESSION_ATTRS.get(value, value)
        if name not in _LIBPQ_PARAMETERS:
            logger.debug("Ignoring parameter %s unsupported by libpq", key)
            continue
        kwargs[name] = value
    return kwargs


def _host_entries(pg_url: str) -> list[str]:
    header = url_header(pg_url)
    hosts_section = re.split(r"[/?]", pg_url[len(header):], maxsplit=1)[0]
    entries = [h.strip() for h in hosts_section.split(",") if h.strip()]
    if not entries:
        raise MalformedConnectionString(f"pgUrl does not contain any host: {pg_url!r}")
    return entries


def _split_host_and_port(entry: str, pg_url: str) -> tuple[str, int]:
    host, sep, port = entry.rpartition(":")
    if not sep:
        return entry, DEFAULT_PORT
    if not host or not port.isdigit():
        raise MalformedConnectionString(f"Invalid host entry {entry!r} in {pg_url!r}")
    return host, int(port)


def _name_with_port(host: str, port: int) -> str:
    return f"{host}:{port}"


def _db_name_with_params(pg_url: str) -> str:
    header = url_header(pg_url)
    rest = pg_url[len(header):]
    match = re.search(r"[/?]", rest)
    if match is None:
        return ""
    return rest[match.start():]


def _convert_to_replica_connection_string(db_name_with_params: str) -> str:
    return _PRIMARY_ROUTING.sub("targetServerType=any", db_name_with_params)

"""A single member of a PostgreSQL cluster."""

from __future__ import annotations

from dataclasses import dataclass, field

from pg_index_health.connection import url_parser
from pg_index_health.errors import InvalidHostConfiguration, MalformedConnectionString

MIN_PORT = 1024
MAX_PORT = 65535


@dataclass(frozen=True)
class Host:
    """Immutable identity of one cluster member.

    Two hosts are equal when their name and port match; the URL and the
    ``can_be_primary`` flag are derived data and take no part in equality.

    Attributes:
        name: Host name or address.
        port: TCP port, 1024..65535.
        pg_url: Single-host connection URL used to reach this member.
        can_be_primary: False when the URL routes to replicas only, so the
            member can never be treated as the primary.
    """

    name: str
    port: int
    pg_url: str = field(compare=False)
    can_be_primary: bool = field(default=True, compare=False)

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidHostConfiguration("hostName cannot be blank or empty")
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise InvalidHostConfiguration(
                f"the port number must be in the range from {MIN_PORT} to {MAX_PORT}"
            )
        url_parser.url_header(self.pg_url)

    @classmethod
    def of_url(cls, pg_url: str) -> Host:
        """Build a host from a connection URL that names exactly one host."""
        host_names = url_parser.extract_host_names(pg_url)
        if len(host_names) > 1:
            raise MalformedConnectionString("pgUrl couldn't contain multiple hosts")
        name, port = host_names[0]
        return cls(
            name=name,
            port=port,
            pg_url=pg_url,
            can_be_primary=not url_parser.is_replica_url(pg_url),
        )

    def __str__(self):
        return f"{self.name}:{self.port}"

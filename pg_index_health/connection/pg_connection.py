"""Connection to one cluster member."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pg_index_health.connection.host import Host


@runtime_checkable
class DataSource(Protocol):
    """Source of live database connections for one host.

    The shape matches ``psycopg2.pool`` pools: borrowed connections must be
    handed back with ``putconn``.
    """

    def getconn(self) -> Any:
        ...

    def putconn(self, conn: Any) -> None:
        ...

    def closeall(self) -> None:
        ...


@dataclass(frozen=True)
class PgConnection:
    """A host paired with the data source that reaches it.

    Equality delegates to the host, so two connections to the same host are
    interchangeable.
    """

    host: Host
    data_source: DataSource = field(compare=False, repr=False)

    @classmethod
    def of(cls, data_source: DataSource, host: Host) -> PgConnection:
        if data_source is None:
            raise TypeError("dataSource cannot be null")
        if host is None:
            raise TypeError("host cannot be null")
        return cls(host=host, data_source=data_source)

    @classmethod
    def of_url(cls, data_source: DataSource, pg_url: str) -> PgConnection:
        return cls.of(data_source, Host.of_url(pg_url))


class PgConnectionFactory(Protocol):
    """Creates a connection to a single host from its URL and credentials."""

    def for_url(self, pg_url: str, user_name: str, password: str) -> PgConnection:
        ...

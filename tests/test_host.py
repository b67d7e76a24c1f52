"""Tests for Host, PgConnection and ConnectionCredentials."""

from __future__ import annotations

import pytest

from conftest import FakeDataSource, make_host

from pg_index_health.connection import url_parser
from pg_index_health.connection.credentials import ConnectionCredentials
from pg_index_health.connection.host import Host
from pg_index_health.connection.pg_connection import DataSource, PgConnection
from pg_index_health.errors import InvalidHostConfiguration, MalformedConnectionString


class TestHost:
    def test_of_url(self):
        host = Host.of_url("postgresql://host-1:6432/db?targetServerType=any")
        assert host.name == "host-1"
        assert host.port == 6432
        assert host.pg_url == "postgresql://host-1:6432/db?targetServerType=any"
        assert host.can_be_primary

    def test_replica_url_cannot_be_primary(self):
        host = Host.of_url("postgresql://host-1:6432/db?targetServerType=secondary")
        assert not host.can_be_primary

    @pytest.mark.parametrize("target, can_be_primary", [("primary", True), ("secondary", False)])
    def test_short_pg_scheme_per_host(self, target, can_be_primary):
        url = f"pg://h1:5432,h2:5432/db?targetServerType={target}"
        hosts = [Host.of_url(u) for _, u in url_parser.extract_name_with_port_and_url_for_each_host(url)]
        assert [str(h) for h in hosts] == ["h1:5432", "h2:5432"]
        assert [h.can_be_primary for h in hosts] == [can_be_primary, can_be_primary]

    def test_multiple_hosts_rejected(self):
        with pytest.raises(MalformedConnectionString, match="multiple hosts"):
            Host.of_url("postgresql://h1:5432,h2:5432/db")

    def test_invalid_url(self):
        with pytest.raises(MalformedConnectionString):
            Host.of_url("mysql://h1:5432/db")

    @pytest.mark.parametrize("port", [0, 80, 1023, 65536])
    def test_port_out_of_range(self, port):
        with pytest.raises(InvalidHostConfiguration, match="1024 to 65535"):
            Host("h1", port, f"postgresql://h1:{port}/db")

    @pytest.mark.parametrize("port", [1024, 5432, 65535])
    def test_port_in_range(self, port):
        assert Host("h1", port, f"postgresql://h1:{port}/db").port == port

    def test_blank_name(self):
        with pytest.raises(InvalidHostConfiguration):
            Host("  ", 5432, "postgresql://h1:5432/db")

    def test_equality_uses_name_and_port_only(self):
        primary_url = Host.of_url("postgresql://h1:5432/db?targetServerType=primary")
        replica_url = Host.of_url("postgresql://h1:5432/other?targetServerType=secondary")
        assert primary_url == replica_url
        assert hash(primary_url) == hash(replica_url)
        assert len({primary_url, replica_url}) == 1

    def test_different_port_not_equal(self):
        assert make_host("h1", 5432) != make_host("h1", 5433)

    def test_immutable(self):
        host = make_host()
        with pytest.raises(AttributeError):
            host.port = 6432

    def test_str(self):
        assert str(make_host("h1", 6432)) == "h1:6432"


class TestPgConnection:
    def test_equality_delegates_to_host(self):
        first = PgConnection.of(FakeDataSource(), make_host("h1"))
        second = PgConnection.of(FakeDataSource(), make_host("h1", replica=True))
        assert first == second
        assert hash(first) == hash(second)

    def test_different_hosts(self):
        assert PgConnection.of(FakeDataSource(), make_host("h1")) != PgConnection.of(
            FakeDataSource(), make_host("h2")
        )

    def test_of_url(self):
        connection = PgConnection.of_url(FakeDataSource(), "postgresql://h1:5432/db")
        assert connection.host == make_host("h1")

    def test_null_arguments(self):
        with pytest.raises(TypeError, match="dataSource"):
            PgConnection.of(None, make_host())
        with pytest.raises(TypeError, match="host"):
            PgConnection.of(FakeDataSource(), None)

    def test_fake_data_source_matches_protocol(self):
        assert isinstance(FakeDataSource(), DataSource)


class TestConnectionCredentials:
    def test_urls_sorted_and_deduplicated(self):
        credentials = ConnectionCredentials.of(
            ["postgresql://h2:5432/db", "postgresql://h1:5432/db", "postgresql://h2:5432/db"],
            "user",
            "secret",
        )
        assert credentials.connection_urls == ("postgresql://h1:5432/db", "postgresql://h2:5432/db")

    def test_of_url(self):
        credentials = ConnectionCredentials.of_url("postgresql://h1:5432/db", "user", "secret")
        assert credentials.connection_urls == ("postgresql://h1:5432/db",)
        assert credentials.user_name == "user"

    def test_password_hidden_from_repr(self):
        credentials = ConnectionCredentials.of_url("postgresql://h1:5432/db", "user", "secret")
        assert "secret" not in repr(credentials)

    def test_empty_urls(self):
        with pytest.raises(ValueError, match="at least one url"):
            ConnectionCredentials.of([], "user", "secret")

    def test_invalid_url(self):
        with pytest.raises(MalformedConnectionString):
            ConnectionCredentials.of_url("h1:5432/db", "user", "secret")

    @pytest.mark.parametrize("user, password", [("", "secret"), ("user", "  ")])
    def test_blank_user_or_password(self, user, password):
        with pytest.raises(ValueError, match="cannot be blank"):
            ConnectionCredentials.of_url("postgresql://h1:5432/db", user, password)

"""Credentials used to connect to every host of a cluster."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from pg_index_health.connection.url_parser import url_header


@dataclass(frozen=True)
class ConnectionCredentials:
    connection_urls: tuple[str, ...]
    user_name: str
    password: str = field(repr=False)

    def __post_init__(self):
        urls = tuple(sorted(set(self.connection_urls)))
        if not urls:
            raise ValueError("connectionUrls have to contain at least one url")
        for url in urls:
            url_header(url)
        _not_blank(self.user_name, "userName")
        _not_blank(self.password, "password")
        object.__setattr__(self, "connection_urls", urls)

    @classmethod
    def of(cls, connection_urls: Iterable[str], user_name: str, password: str) -> ConnectionCredentials:
        return cls(tuple(connection_urls), user_name, password)

    @classmethod
    def of_url(cls, write_url: str, user_name: str, password: str) -> ConnectionCredentials:
        return cls((write_url,), user_name, password)


def _not_blank(value: str, name: str) -> None:
    if value is None:
        raise TypeError(f"{name} cannot be null")
    if not value.strip():
        raise ValueError(f"{name} cannot be blank or empty")

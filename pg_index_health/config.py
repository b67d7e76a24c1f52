"""Configuration loading and management for pg-index-health."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from pg_index_health.connection.cluster import DEFAULT_PRIMARY_REFRESH_INTERVAL
from pg_index_health.models import (
    DEFAULT_BLOAT_PERCENTAGE_THRESHOLD,
    DEFAULT_REMAINING_PERCENTAGE_THRESHOLD,
    DEFAULT_SCHEMA_NAME,
    PgContext,
)

CONFIG_FILE_NAME = "pg-index-health.yaml"


@dataclass
class ConnectionConfig:
    """Where and as whom to connect."""

    urls: list[str] = field(default_factory=list)
    user: str | None = None
    password: str | None = None


@dataclass
class ClusterConfig:
    primary_refresh_interval: float = DEFAULT_PRIMARY_REFRESH_INTERVAL


@dataclass
class ContextConfig:
    schema_name: str = DEFAULT_SCHEMA_NAME
    bloat_percentage_threshold: float = DEFAULT_BLOAT_PERCENTAGE_THRESHOLD
    remaining_percentage_threshold: float = DEFAULT_REMAINING_PERCENTAGE_THRESHOLD

    def to_pg_context(self) -> PgContext:
        return PgContext(
            schema_name=self.schema_name,
            bloat_percentage_threshold=self.bloat_percentage_threshold,
            remaining_percentage_threshold=self.remaining_percentage_threshold,
        )


@dataclass
class CheckConfig:
    """Configuration for which diagnostics to include/exclude."""

    exclude: set[str] = field(default_factory=set)
    include_only: set[str] | None = None  # None = no whitelist, run all minus exclude


@dataclass
class Config:
    """Complete configuration for pg-index-health."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    checks: CheckConfig = field(default_factory=CheckConfig)


def find_config_file() -> str | None:
    """Search for pg-index-health.yaml in cwd, then home dir.

    Returns:
        Path to config file if found, None otherwise.
    """
    cwd_config = Path.cwd() / CONFIG_FILE_NAME
    if cwd_config.is_file():
        return str(cwd_config)

    home_config = Path.home() / CONFIG_FILE_NAME
    if home_config.is_file():
        return str(home_config)

    return None


def load_config(config_path: str | None = None, auto_discover: bool = True) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Explicit path to config file. If None and auto_discover is True,
                     searches default locations.
        auto_discover: If True and config_path is None, search for config file.

    Returns:
        Config object. Returns default config if no file found.
    """
    if config_path is None and auto_discover:
        config_path = find_config_file()

    if config_path is None:
        return Config()

    if not os.path.isfile(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return _parse_config(data)


def _parse_config(data: dict) -> Config:
    """Parse YAML data into Config object."""
    config = Config()

    if "connection" in data:
        conn_data = data["connection"] or {}
        urls = conn_data.get("urls", [])
        if isinstance(urls, str):
            urls = [urls]
        config.connection = ConnectionConfig(
            urls=list(urls),
            user=conn_data.get("user"),
            password=conn_data.get("password"),
        )

    if "cluster" in data:
        cluster_data = data["cluster"] or {}
        config.cluster = ClusterConfig(
            primary_refresh_interval=float(
                cluster_data.get("primary_refresh_interval", DEFAULT_PRIMARY_REFRESH_INTERVAL)
            ),
        )

    if "context" in data:
        ctx = data["context"] or {}
        config.context = ContextConfig(
            schema_name=ctx.get("schema_name", DEFAULT_SCHEMA_NAME),
            bloat_percentage_threshold=float(
                ctx.get("bloat_percentage_threshold", DEFAULT_BLOAT_PERCENTAGE_THRESHOLD)
            ),
            remaining_percentage_threshold=float(
                ctx.get("remaining_percentage_threshold", DEFAULT_REMAINING_PERCENTAGE_THRESHOLD)
            ),
        )

    if "checks" in data:
        config.checks = _parse_check_config(data["checks"] or {})

    return config


def _parse_check_config(data: dict) -> CheckConfig:
    """Parse check configuration section."""
    exclude = set(data.get("exclude", []))

    include_only = None
    if "include_only" in data:
        include_only = set(data["include_only"])

    return CheckConfig(exclude=exclude, include_only=include_only)


def merge_cli_with_config(
    config: Config,
    cli_urls: list[str] | None = None,
    cli_user: str | None = None,
    cli_password: str | None = None,
    cli_schema: str | None = None,
    cli_refresh_interval: float | None = None,
    cli_exclude: set[str] | None = None,
    cli_include_only: set[str] | None = None,
) -> Config:
    """Merge CLI arguments with config file settings.

    CLI arguments take precedence over config file. CLI excludes are added to
    the configured ones; a CLI include-only list replaces the configured one.
    The password falls back to the PGPASSWORD environment variable.
    """
    connection = ConnectionConfig(
        urls=list(cli_urls) if cli_urls else list(config.connection.urls),
        user=cli_user or config.connection.user,
        password=cli_password or config.connection.password or os.environ.get("PGPASSWORD"),
    )

    cluster = ClusterConfig(
        primary_refresh_interval=(
            cli_refresh_interval
            if cli_refresh_interval is not None
            else config.cluster.primary_refresh_interval
        ),
    )

    context = ContextConfig(
        schema_name=cli_schema or config.context.schema_name,
        bloat_percentage_threshold=config.context.bloat_percentage_threshold,
        remaining_percentage_threshold=config.context.remaining_percentage_threshold,
    )

    checks = CheckConfig(
        exclude=config.checks.exclude | (cli_exclude or set()),
        include_only=cli_include_only if cli_include_only is not None else config.checks.include_only,
    )

    return Config(connection=connection, cluster=cluster, context=context, checks=checks)

"""CLI entry point for pg-index-health."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime

from pg_index_health import __version__

# File extensions per output format
_FORMAT_EXT = {"json": ".json", "text": ".txt"}

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VIOLATIONS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-index-health",
        description="Check a PostgreSQL cluster for index and schema anti-patterns.",
    )
    parser.add_argument("--version", action="version", version=f"pg-index-health {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands (default: check)")

    # -- check --
    check_parser = subparsers.add_parser(
        "check", help="Run diagnostics against the primary or every host of a cluster"
    )
    _add_connection_args(check_parser)
    _add_output_args(check_parser)
    check_parser.add_argument("--config", help="Path to a pg-index-health.yaml config file")
    check_parser.add_argument("--schema", "-s", default=None, help="Schema to check (default: public)")
    check_parser.add_argument(
        "--exclude",
        help="Comma-separated list of diagnostics to skip",
    )
    check_parser.add_argument(
        "--include-only",
        help="Comma-separated list of diagnostics to run (default: all)",
    )
    check_parser.add_argument("--verbose", "-v", action="store_true", help="Print progress")

    # -- list-checks --
    list_parser = subparsers.add_parser("list-checks", help="List all available diagnostics")
    list_parser.add_argument(
        "--topology",
        choices=["ON_PRIMARY", "ACROSS_CLUSTER", "all"],
        default="all",
        help="Filter diagnostics by topology (default: all)",
    )

    return parser


def _add_connection_args(parser: argparse.ArgumentParser):
    grp = parser.add_argument_group("connection")
    grp.add_argument(
        "--url",
        action="append",
        dest="urls",
        help="Connection URL (postgresql://host1:port1,host2:port2/db?...); may be repeated",
    )
    grp.add_argument("--user", "-U", default=None, help="Database user")
    grp.add_argument("--password", "-W", default=None, help="Database password")
    grp.add_argument(
        "--refresh-interval",
        type=float,
        default=None,
        help="Seconds between primary host re-detection (default: 30)",
    )


def _add_output_args(parser: argparse.ArgumentParser):
    grp = parser.add_argument_group("output")
    grp.add_argument(
        "--format",
        "-f",
        choices=["text", "json"],
        default="text",
        help="Report format (default: text)",
    )
    grp.add_argument("--output", "-o", help="Output file path (default: stdout)")


def main(argv: list[str] | None = None):
    parser = build_parser()

    # Default to "check" when no subcommand is given but arguments are present
    raw_args = argv if argv is not None else sys.argv[1:]
    known_commands = {"check", "list-checks"}
    if raw_args and raw_args[0] not in known_commands and raw_args[0] not in ("--version", "--help", "-h"):
        raw_args = ["check"] + list(raw_args)
    elif not raw_args:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    args = parser.parse_args(raw_args)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    if args.command == "list-checks":
        _cmd_list_checks(args)
    elif args.command == "check":
        sys.exit(_cmd_check(args))


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _cmd_list_checks(args):
    from pg_index_health.diagnostics import all_diagnostics

    diagnostics = [
        d for d in all_diagnostics() if args.topology == "all" or d.topology.value == args.topology
    ]
    if not diagnostics:
        print("No diagnostics found.")
        return

    for diagnostic in diagnostics:
        runtime_tag = "[runtime]" if diagnostic.runtime else ""
        print(f"  {diagnostic.name:35s} {diagnostic.topology.value:15s} {runtime_tag}")


def _split_names(value: str | None) -> set[str] | None:
    if value is None:
        return None
    return {name.strip() for name in value.split(",") if name.strip()}


def _cmd_check(args) -> int:
    import psycopg2

    from pg_index_health.checks.engine import CheckEngine
    from pg_index_health.config import load_config, merge_cli_with_config
    from pg_index_health.connection.cluster import ClusterConnectionFactory
    from pg_index_health.connection.credentials import ConnectionCredentials
    from pg_index_health.connection.factory import Psycopg2ConnectionFactory
    from pg_index_health.errors import PgIndexHealthError
    from pg_index_health.scanner import run_scan

    configure_logging(args.verbose)

    try:
        config = merge_cli_with_config(
            load_config(args.config),
            cli_urls=args.urls,
            cli_user=args.user,
            cli_password=args.password,
            cli_schema=args.schema,
            cli_refresh_interval=args.refresh_interval,
            cli_exclude=_split_names(args.exclude),
            cli_include_only=_split_names(args.include_only),
        )
        credentials = ConnectionCredentials.of(
            config.connection.urls, config.connection.user or "", config.connection.password or ""
        )
        pg_context = config.context.to_pg_context()
        engine = CheckEngine()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    factory = ClusterConnectionFactory(Psycopg2ConnectionFactory())
    try:
        cluster = factory.of(credentials, primary_refresh_interval=config.cluster.primary_refresh_interval)
    except (psycopg2.Error, PgIndexHealthError) as e:
        print("Error: Could not connect to the cluster.", file=sys.stderr)
        print(f"       {str(e).strip()}", file=sys.stderr)
        return EXIT_ERROR

    with cluster:
        report = run_scan(
            cluster,
            pg_context=pg_context,
            engine=engine,
            exclude=config.checks.exclude,
            include_only=config.checks.include_only,
        )

    output = _render_report(report, args.format)
    _write_output(output, args, dbname=report.database)

    if report.checks_failed:
        return EXIT_ERROR
    if report.violations_count:
        return EXIT_VIOLATIONS
    return EXIT_OK


def _write_output(output: str, args, dbname: str = ""):
    """Write report to a file (with timestamped name) or stdout."""
    if not args.output:
        sys.stdout.write(output)
        return

    path = _make_output_path(args.output, args.format, dbname)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(output)
    print(f"Report written to {path}", file=sys.stderr)


def _make_output_path(user_path: str, fmt: str, dbname: str = "") -> str:
    """Insert a timestamp into the output filename.

    If the user provides a path like ``report.json``, the result is
    ``report_20260127_131504.json``.  If they provide a bare directory,
    the file is placed there with an auto-generated name.
    """
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    ext = _FORMAT_EXT.get(fmt, "")
    name = dbname or "pg-index-health"

    if os.path.isdir(user_path):
        return os.path.join(user_path, f"{name}_{ts}{ext}")

    base, existing_ext = os.path.splitext(user_path)
    if not existing_ext:
        existing_ext = ext
    return f"{base}_{ts}{existing_ext}"


def _render_report(report, fmt: str) -> str:
    if fmt == "json":
        from pg_index_health.reporters.json_reporter import render
    elif fmt == "text":
        from pg_index_health.reporters.text_reporter import render
    else:
        raise ValueError(f"Unknown format: {fmt}")
    return render(report)

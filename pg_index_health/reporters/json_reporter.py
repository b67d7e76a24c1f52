"""JSON report renderer."""

from __future__ import annotations

import dataclasses
import json

from pg_index_health import __version__
from pg_index_health.models import ScanReport


def render(report: ScanReport) -> str:
    """Render a ScanReport as a JSON string."""
    data = {
        "meta": {
            "tool": "pg-index-health",
            "version": __version__,
            "timestamp": report.timestamp.isoformat(),
            "database": report.database,
            "primary_host": report.primary_host,
            "hosts": report.hosts,
            "schema": report.schema_name,
        },
        "summary": {
            "total_checks": report.checks_total,
            "checks_passed": report.checks_passed,
            "checks_failed": report.checks_failed,
            "violations": report.violations_count,
        },
        "results": [],
    }

    for result in report.results:
        data["results"].append({
            "check_name": result.check_name,
            "topology": result.topology,
            "passed": result.passed,
            "error": result.error,
            "violations_count": result.violations_count,
            "violations": [
                {"type": type(v).__name__, **dataclasses.asdict(v)} if dataclasses.is_dataclass(v) else v
                for v in result.violations
            ],
        })

    return json.dumps(data, indent=2, default=str)

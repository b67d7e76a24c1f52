"""Plain text report: one line per diagnostic with its violation count."""

from __future__ import annotations

from pg_index_health.models import ScanReport


def render(report: ScanReport) -> str:
    lines = [
        f"pg-index-health report for database {report.database!r}, schema {report.schema_name!r}",
        f"primary: {report.primary_host}; hosts: {', '.join(report.hosts)}",
        "",
    ]
    width = max((len(r.check_name) for r in report.results), default=0)
    for result in report.results:
        if result.error:
            status = f"ERROR {result.error}"
        else:
            status = str(result.violations_count)
        lines.append(f"{result.check_name:{width}s}  {status}")
    lines.append("")
    lines.append(
        f"{report.checks_passed}/{report.checks_total} checks passed, "
        f"{report.violations_count} violation(s), {report.checks_failed} failed"
    )
    return "\n".join(lines) + "\n"

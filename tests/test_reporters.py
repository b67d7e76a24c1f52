"""Tests for pg_index_health.reporters: JSON and text rendering."""

from __future__ import annotations

import json

from pg_index_health import __version__
from pg_index_health.models import CheckResult, IndexGroup, Index
from pg_index_health.reporters.json_reporter import render as render_json
from pg_index_health.reporters.text_reporter import render as render_text

# -- JSON Reporter ------------------------------------------------------------


class TestJSONReporter:
    def test_valid_json(self, sample_report):
        data = json.loads(render_json(sample_report))
        assert set(data) == {"meta", "summary", "results"}

    def test_meta_fields(self, sample_report):
        meta = json.loads(render_json(sample_report))["meta"]
        assert meta["tool"] == "pg-index-health"
        assert meta["version"] == __version__
        assert meta["database"] == "testdb"
        assert meta["primary_host"] == "h1:5432"
        assert meta["hosts"] == ["h1:5432", "h2:5432"]
        assert meta["schema"] == "public"
        assert meta["timestamp"].startswith("2026-01-27T12:00:00")

    def test_summary_counts(self, sample_report):
        s = json.loads(render_json(sample_report))["summary"]
        assert s == {"total_checks": 3, "checks_passed": 1, "checks_failed": 1, "violations": 2}

    def test_violation_fields(self, sample_report):
        data = json.loads(render_json(sample_report))
        tables = next(r for r in data["results"] if r["check_name"] == "tables_without_primary_key")
        assert tables["passed"] is False
        assert tables["violations_count"] == 2
        assert tables["violations"][0] == {"type": "Table", "table_name": "orders", "table_size": 8192}

    def test_error_reported(self, sample_report):
        data = json.loads(render_json(sample_report))
        unused = next(r for r in data["results"] if r["check_name"] == "unused_indexes")
        assert unused["topology"] == "ACROSS_CLUSTER"
        assert "OperationalError" in unused["error"]

    def test_nested_records(self, empty_report):
        group = IndexGroup("orders", (Index("orders", "i1", 10), Index("orders", "i2", 20)))
        empty_report.results.append(CheckResult("duplicated_indexes", "ON_PRIMARY", violations=[group]))
        data = json.loads(render_json(empty_report))
        violation = data["results"][0]["violations"][0]
        assert violation["type"] == "IndexGroup"
        assert [i["index_name"] for i in violation["indexes"]] == ["i1", "i2"]

    def test_empty_report(self, empty_report):
        data = json.loads(render_json(empty_report))
        assert data["results"] == []
        assert data["summary"]["total_checks"] == 0


# -- Text Reporter ------------------------------------------------------------


class TestTextReporter:
    def test_header(self, sample_report):
        output = render_text(sample_report)
        assert "'testdb'" in output
        assert "primary: h1:5432; hosts: h1:5432, h2:5432" in output

    def test_line_per_diagnostic(self, sample_report):
        lines = render_text(sample_report).splitlines()
        assert any(line.startswith("invalid_indexes") and line.endswith(" 0") for line in lines)
        assert any(line.startswith("tables_without_primary_key") and line.endswith(" 2") for line in lines)

    def test_error_line(self, sample_report):
        output = render_text(sample_report)
        assert "ERROR Diagnostic unused_indexes failed" in output

    def test_summary_line(self, sample_report):
        last = render_text(sample_report).splitlines()[-1]
        assert last == "1/3 checks passed, 2 violation(s), 1 failed"

    def test_empty_report(self, empty_report):
        assert render_text(empty_report).splitlines()[-1] == "0/0 checks passed, 0 violation(s), 0 failed"

"""Unit tests for report formatting: markdown, JSON and JUnit XML."""

import json
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from pathlib import Path

from src.report.writers import (
    JSON_REPORT_FILE,
    JUNIT_REPORT_FILE,
    MARKDOWN_REPORT_FILE,
    RunMetadata,
    _format_plain_table,
    build_json_report,
    build_junit_xml,
    format_report_markdown,
    write_reports,
)
from src.sla.models import (
    CheckResult,
    EndpointMetric,
    MetricDelta,
    MetricSet,
    Severity,
    SeverityAssessment,
    TrendAnalysis,
    ValidationResult,
)

_NOW = datetime(2025, 1, 15, 10, 0, tzinfo=UTC)
_META = RunMetadata(profile="stress", target_url="https://app.test", duration="42.50s")


def _results(*, all_pass: bool = False) -> list[ValidationResult]:
    return [
        ValidationResult(
            metric="P95 Response Time (ms)", actual="600.00", threshold="<= 500", passed=all_pass
        ),
        ValidationResult(metric="Error Rate (%)", actual="0.50", threshold="<= 1", passed=True),
    ]


def _trends(level: Severity = Severity.WARNING) -> TrendAnalysis:
    return TrendAnalysis(
        deltas=[
            MetricDelta(metric="P95 Response Time (ms)", previous=500, current=600, delta_percent=20, improved=False),
            MetricDelta(metric="Throughput (req/s)", previous=10, current=12, delta_percent=20, improved=True),
        ],
        severity=SeverityAssessment(level=level, triggering_metric="P95 Response Time (ms)", reason="P95 too high"),
    )


class TestFormatPlainTable:
    def test_aligned_columns(self) -> None:
        table = _format_plain_table(["Name", "Value"], [["a", "1"], ["long name", "100"]], right_align={1})
        lines = table.split("\n")
        assert lines[0] == "Name       Value"
        assert lines[1] == "---------  -----"
        assert lines[2] == "a              1"
        assert lines[3] == "long name    100"

    def test_empty_rows(self) -> None:
        assert _format_plain_table(["A"], []) == ""


class TestFormatReportMarkdown:
    def test_header_and_failure_summary(self) -> None:
        md = format_report_markdown(_results(), _META)
        assert md.startswith("# SLA Performance Report")
        assert "**Profile:** STRESS" in md
        assert "**Status:** FAILED (1/2 checks passed)" in md
        assert "1 SLA violation(s) under the STRESS load profile: P95 Response Time (ms)." in md

    def test_all_passed_summary(self) -> None:
        md = format_report_markdown(_results(all_pass=True), _META)
        assert "All SLA thresholds were met under the STRESS load profile." in md
        assert "**Status:** PASSED" in md

    def test_validation_table(self) -> None:
        md = format_report_markdown(_results(), _META)
        assert "## SLA Validations" in md
        assert "FAIL" in md
        assert "PASS" in md
        assert "<= 500" in md

    def test_no_results(self) -> None:
        assert "*No checks were evaluated.*" in format_report_markdown([], _META)

    def test_trends_sections(self) -> None:
        md = format_report_markdown(_results(), _META, trends=_trends())
        assert "## Alert Severity" in md
        assert "**WARNING**: P95 too high" in md
        assert "## Run Comparison (Current vs Previous)" in md
        assert "+20.0%" in md
        assert "regressed" in md
        assert "improved" in md

    def test_no_comparison_without_deltas(self) -> None:
        trends = TrendAnalysis(severity=SeverityAssessment(level=Severity.HEALTHY, reason="ok"))
        md = format_report_markdown(_results(), _META, trends=trends)
        assert "## Alert Severity" in md
        assert "Run Comparison" not in md

    def test_metric_sections(self) -> None:
        metrics = MetricSet(
            throughput=5.5,
            total_requests=1200,
            iterations=300,
            endpoints=(EndpointMetric(name="GET /posts (Browse/List)", avg_duration_ms=120.55),),
            checks=(CheckResult(name="status is 200", passes=95, fails=5), CheckResult(name="never run")),
        )
        md = format_report_markdown(_results(), _META, metrics=metrics)
        assert "## Endpoint Performance" in md
        assert "120.55" in md
        assert "## Scenario Checks" in md
        assert "95.0%" in md
        assert "0.0%" in md
        assert "- **Total requests:** 1,200" in md
        assert "- **Throughput:** 5.50 req/s" in md


class TestBuildJsonReport:
    def test_structure(self) -> None:
        report = build_json_report(_results(), _META, now=_NOW)
        assert report["id"] == f"report-{int(_NOW.timestamp() * 1000)}"
        assert report["timestamp"] == _NOW.isoformat()
        assert report["metadata"]["profile"] == "stress"
        assert report["summary"] == {"total": 2, "passed": 1, "failed": 1, "pass_rate": "50.00%"}
        assert report["status"] == "FAILED"
        assert report["results"][0]["actual"] == "600.00"
        assert "trends" not in report

    def test_with_trends_is_serializable(self) -> None:
        report = build_json_report(_results(all_pass=True), _META, trends=_trends(), now=_NOW)
        assert report["status"] == "PASSED"
        assert report["trends"]["severity"]["level"] == "Warning"
        json.dumps(report)

    def test_empty_results(self) -> None:
        report = build_json_report([], _META, now=_NOW)
        assert report["summary"]["pass_rate"] == "0.00%"
        assert report["status"] == "PASSED"


class TestBuildJunitXml:
    def test_one_testcase_per_check(self) -> None:
        xml = build_junit_xml(_results(), _META, now=_NOW)
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        root = ET.fromstring(xml.split("\n", 1)[1])
        assert root.tag == "testsuites"
        assert root.get("name") == "Performance-Observability-Validation"
        assert root.get("tests") == "2"
        assert root.get("failures") == "1"
        assert root.get("time") == "42.50"
        cases = root.findall("./testsuite/testcase")
        assert [c.get("name") for c in cases] == ["P95_Response_Time__ms_", "Error_Rate____"]

    def test_failure_element(self) -> None:
        root = ET.fromstring(build_junit_xml(_results(), _META, now=_NOW).split("\n", 1)[1])
        failures = root.findall(".//failure")
        assert len(failures) == 1
        assert failures[0].get("type") == "SLAViolation"
        assert failures[0].text == "Expected: <= 500\nActual: 600.00"

    def test_special_characters_escaped(self) -> None:
        xml = build_junit_xml(_results(), _META, now=_NOW)
        assert "&lt;= 500" in xml


class TestWriteReports:
    def test_writes_all_artifacts(self, tmp_path: Path) -> None:
        reports_dir = tmp_path / "reports"
        paths = write_reports(reports_dir, _results(), _META, MetricSet(), _trends(), history=[])
        assert {p.name for p in paths} == {MARKDOWN_REPORT_FILE, JSON_REPORT_FILE, JUNIT_REPORT_FILE}
        assert all(p.exists() for p in paths)
        report = json.loads((reports_dir / JSON_REPORT_FILE).read_text())
        assert report["history_size"] == 0
        assert report["trends"]["deltas"][0]["metric"] == "P95 Response Time (ms)"

"""Report artifacts for a validated run: Markdown, JSON and JUnit XML.

Formatting functions are pure; write_reports() puts the artifacts in the
reports directory and returns their paths.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypedDict

from src.sla.models import MetricSet, RunRecord, TrendAnalysis, ValidationResult

logger = logging.getLogger(__name__)

MARKDOWN_REPORT_FILE = "report.md"
JSON_REPORT_FILE = "report.json"
JUNIT_REPORT_FILE = "junit-report.xml"


class RunMetadata(TypedDict):
    profile: str
    target_url: str
    duration: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _summary_counts(results: Sequence[ValidationResult]) -> tuple[int, int]:
    passed = sum(1 for r in results if r.passed)
    return passed, len(results) - passed


def _pass_rate(results: Sequence[ValidationResult]) -> float:
    if not results:
        return 0.0
    passed, _ = _summary_counts(results)
    return passed / len(results) * 100


def _format_plain_table(
    headers: list[str],
    rows: list[list[str]],
    right_align: set[int] | None = None,
) -> str:
    """Format a plain-text table with aligned columns separated by two spaces."""
    right_align = right_align or set()
    if not rows:
        return ""
    all_data = [headers, *rows]
    col_widths = [max(len(row[i]) for row in all_data) for i in range(len(headers))]

    def fmt_row(cells: list[str]) -> str:
        parts: list[str] = []
        for i, cell in enumerate(cells):
            width = col_widths[i]
            parts.append(cell.rjust(width) if i in right_align else cell.ljust(width))
        return "  ".join(parts).rstrip()

    lines = [fmt_row(headers)]
    lines.append("  ".join("-" * w for w in col_widths))
    lines.extend(fmt_row(row) for row in rows)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------


def format_report_markdown(
    results: Sequence[ValidationResult],
    metadata: RunMetadata,
    metrics: MetricSet | None = None,
    trends: TrendAnalysis | None = None,
) -> str:
    """Render a validated run as a readable markdown report."""
    passed, failed = _summary_counts(results)
    profile = metadata["profile"].upper()

    lines: list[str] = []
    lines.append("# SLA Performance Report")
    lines.append("")
    lines.append(f"**Profile:** {profile}")
    lines.append(f"**Target:** {metadata['target_url']}")
    lines.append(f"**Duration:** {metadata['duration']}")
    lines.append(f"**Status:** {'PASSED' if failed == 0 else 'FAILED'} ({passed}/{len(results)} checks passed)")
    lines.append("")

    # 1. Summary
    lines.append("## Summary")
    lines.append("")
    if failed == 0:
        lines.append(f"All SLA thresholds were met under the {profile} load profile.")
    else:
        failed_names = ", ".join(r.metric for r in results if not r.passed)
        lines.append(f"{failed} SLA violation(s) under the {profile} load profile: {failed_names}.")
    lines.append("")

    # 2. Severity
    if trends is not None:
        severity = trends.severity
        lines.append("## Alert Severity")
        lines.append("")
        lines.append(f"**{severity.level.value.upper()}**: {severity.reason}")
        lines.append("")

    # 3. SLA validations
    lines.append("## SLA Validations")
    lines.append("")
    if results:
        rows = [[r.metric, r.threshold, r.actual, "PASS" if r.passed else "FAIL"] for r in results]
        lines.append(_format_plain_table(["Metric", "Threshold", "Actual", "Status"], rows, right_align={2}))
    else:
        lines.append("*No checks were evaluated.*")
    lines.append("")

    # 4. Run comparison
    if trends is not None and trends.deltas:
        lines.append("## Run Comparison (Current vs Previous)")
        lines.append("")
        rows = [
            [
                d.metric,
                f"{d.previous:.2f}",
                f"{d.current:.2f}",
                f"{d.delta_percent:+.1f}%",
                "improved" if d.improved else "regressed",
            ]
            for d in trends.deltas
        ]
        lines.append(
            _format_plain_table(["Metric", "Previous", "Current", "Change", "Trend"], rows, right_align={1, 2, 3})
        )
        lines.append("")

    if metrics is not None:
        # 5. Endpoints
        if metrics.endpoints:
            lines.append("## Endpoint Performance")
            lines.append("")
            rows = [[ep.name, f"{ep.avg_duration_ms:.2f}"] for ep in metrics.endpoints]
            lines.append(_format_plain_table(["Endpoint", "Avg Latency (ms)"], rows, right_align={1}))
            lines.append("")

        # 6. Checks
        if metrics.checks:
            lines.append("## Scenario Checks")
            lines.append("")
            rows = []
            for check in metrics.checks:
                total = check.passes + check.fails
                rate = f"{check.passes / total * 100:.1f}%" if total > 0 else "0.0%"
                rows.append([check.name, str(check.passes), str(check.fails), rate])
            lines.append(
                _format_plain_table(["Check", "Passed", "Failed", "Success Rate"], rows, right_align={1, 2, 3})
            )
            lines.append("")

        lines.append(f"- **Total requests:** {metrics.total_requests:,}")
        lines.append(f"- **Iterations:** {metrics.iterations:,}")
        lines.append(f"- **Throughput:** {metrics.throughput:.2f} req/s")
        lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def build_json_report(
    results: Sequence[ValidationResult],
    metadata: RunMetadata,
    trends: TrendAnalysis | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now(UTC)
    passed, failed = _summary_counts(results)
    report: dict[str, Any] = {
        "id": f"report-{int(now.timestamp() * 1000)}",
        "timestamp": now.isoformat(),
        "metadata": dict(metadata),
        "summary": {
            "total": len(results),
            "passed": passed,
            "failed": failed,
            "pass_rate": f"{_pass_rate(results):.2f}%",
        },
        "results": [r.model_dump() for r in results],
        "status": "PASSED" if failed == 0 else "FAILED",
    }
    if trends is not None:
        report["trends"] = trends.model_dump(mode="json")
    return report


# ---------------------------------------------------------------------------
# JUnit XML
# ---------------------------------------------------------------------------


def _safe_test_name(metric: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", metric)


def build_junit_xml(results: Sequence[ValidationResult], metadata: RunMetadata, now: datetime | None = None) -> str:
    """One testcase per SLA check so CI systems show violations as test failures."""
    now = now or datetime.now(UTC)
    _, failed = _summary_counts(results)
    duration = metadata["duration"].rstrip("s") or "0"
    counts = {"tests": str(len(results)), "failures": str(failed), "errors": "0"}

    suites = ET.Element("testsuites", {"name": "Performance-Observability-Validation", **counts, "time": duration})
    suite = ET.SubElement(suites, "testsuite", {"name": "SLA-Validation", **counts, "timestamp": now.isoformat()})
    for result in results:
        case = ET.SubElement(
            suite, "testcase", {"name": _safe_test_name(result.metric), "classname": "SLAValidation", "time": "0"}
        )
        if not result.passed:
            failure = ET.SubElement(
                case, "failure", {"message": f"{result.metric} exceeded threshold", "type": "SLAViolation"}
            )
            failure.text = f"Expected: {result.threshold}\nActual: {result.actual}"

    ET.indent(suites, space="    ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(suites, encoding="unicode")


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def write_reports(
    reports_dir: Path,
    results: Sequence[ValidationResult],
    metadata: RunMetadata,
    metrics: MetricSet | None = None,
    trends: TrendAnalysis | None = None,
    history: Sequence[RunRecord] | None = None,
) -> list[Path]:
    """Write Markdown, JSON and JUnit artifacts. Returns the written paths."""
    reports_dir.mkdir(parents=True, exist_ok=True)
    json_report = build_json_report(results, metadata, trends)
    if history is not None:
        json_report["history_size"] = len(history)

    artifacts = {
        reports_dir / MARKDOWN_REPORT_FILE: format_report_markdown(results, metadata, metrics, trends),
        reports_dir / JSON_REPORT_FILE: json.dumps(json_report, indent=2),
        reports_dir / JUNIT_REPORT_FILE: build_junit_xml(results, metadata),
    }
    for path, content in artifacts.items():
        path.write_text(content, encoding="utf-8")

    logger.info("Reports written to %s: %s", reports_dir, ", ".join(p.name for p in artifacts))
    return list(artifacts)

"""Prometheus metric definitions for SLA validation runs.

All metrics are module-level singletons registered with the default
prometheus_client registry. The CLI optionally dumps them to a
node_exporter textfile at the end of a run.
"""

import logging
from collections.abc import Sequence

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

from src.sla.models import Severity, SeverityAssessment, ValidationResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Run-level metrics
# ---------------------------------------------------------------------------

PIPELINE_DURATION_BUCKETS = (5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)

RUNS_TOTAL = Counter(
    "sla_validator_runs_total",
    "Total number of validation runs",
    labelnames=["profile", "status"],
)

PIPELINE_DURATION = Histogram(
    "sla_validator_pipeline_duration_seconds",
    "End-to-end pipeline duration in seconds (including the load test)",
    labelnames=["profile"],
    buckets=PIPELINE_DURATION_BUCKETS,
)

# ---------------------------------------------------------------------------
# Check-level metrics
# ---------------------------------------------------------------------------

CHECKS_TOTAL = Counter(
    "sla_validator_checks_total",
    "Total number of evaluated SLA checks",
    labelnames=["metric", "result"],
)

CHECKS_PASSED = Gauge(
    "sla_validator_checks_passed",
    "Number of SLA checks passed in the latest run",
    labelnames=["profile"],
)

CHECKS_FAILED = Gauge(
    "sla_validator_checks_failed",
    "Number of SLA checks failed in the latest run",
    labelnames=["profile"],
)

# ---------------------------------------------------------------------------
# Severity (0=healthy, 1=warning, 2=critical)
# ---------------------------------------------------------------------------

SEVERITY_LEVEL = Gauge(
    "sla_validator_severity_level",
    "Severity of the latest run (0=healthy, 1=warning, 2=critical)",
    labelnames=["profile"],
)

SEVERITY_VALUES: dict[Severity, int] = {
    Severity.HEALTHY: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
}


def record_validation(
    profile: str,
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
) -> None:
    """Update check and severity metrics for a finished validation."""
    passed = 0
    for result in results:
        CHECKS_TOTAL.labels(metric=result.metric, result="pass" if result.passed else "fail").inc()
        passed += int(result.passed)
    CHECKS_PASSED.labels(profile=profile).set(passed)
    CHECKS_FAILED.labels(profile=profile).set(len(results) - passed)
    SEVERITY_LEVEL.labels(profile=profile).set(SEVERITY_VALUES[severity.level])


def write_textfile(path: str) -> bool:
    """Dump the default registry for node_exporter's textfile collector. Never raises."""
    try:
        write_to_textfile(path, REGISTRY)
    except OSError:
        logger.exception("Failed to write metrics textfile %s", path)
        return False
    return True

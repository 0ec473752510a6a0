"""Run-over-run deltas and overall severity classification.

Pure functions over already-persisted history and the current MetricSet.
"""

from collections.abc import Sequence

from src.sla.models import (
    ERROR_RATE_METRIC,
    P95_METRIC,
    THROUGHPUT_METRIC,
    AlertThresholds,
    AlertTier,
    MetricDelta,
    MetricSet,
    RunRecord,
    Severity,
    SeverityAssessment,
    TrendAnalysis,
)

# Metrics where a higher value is better. Everything else improves by decreasing.
HIGHER_IS_BETTER = frozenset({THROUGHPUT_METRIC})


def _parse_actual(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def compute_deltas(history: Sequence[RunRecord]) -> list[MetricDelta]:
    """Compare the last two runs metric by metric.

    Metrics missing from either run, with a non-numeric value, or with a
    previous value of zero are skipped. Order follows the current run.
    """
    if len(history) < 2:
        return []
    previous, current = history[-2], history[-1]

    deltas: list[MetricDelta] = []
    for metric, current_metric in current.metrics.items():
        previous_metric = previous.metrics.get(metric)
        if previous_metric is None:
            continue
        cur = _parse_actual(current_metric.actual)
        prev = _parse_actual(previous_metric.actual)
        if cur is None or prev is None or prev == 0:
            continue
        improved = cur > prev if metric in HIGHER_IS_BETTER else cur < prev
        deltas.append(
            MetricDelta(
                metric=metric,
                previous=prev,
                current=cur,
                delta_percent=(cur - prev) / prev * 100,
                improved=improved,
            )
        )
    return deltas


def _tier_breach(metrics: MetricSet, tier: AlertTier) -> tuple[str, str] | None:
    """Return (metric, reason) for the first bound in ``tier`` that is exceeded."""
    if metrics.p95_response_time > tier.p95_response_time_ms:
        return (
            P95_METRIC,
            f"P95 response time {metrics.p95_response_time:.2f} ms exceeds {tier.p95_response_time_ms:g} ms",
        )
    if metrics.error_rate > tier.max_error_rate_percent:
        return (
            ERROR_RATE_METRIC,
            f"Error rate {metrics.error_rate:.2f}% exceeds {tier.max_error_rate_percent:g}%",
        )
    return None


def assess_severity(metrics: MetricSet, alerts: AlertThresholds) -> SeverityAssessment:
    """Classify the run. The critical tier is checked before the warning tier."""
    for level, tier in ((Severity.CRITICAL, alerts.critical), (Severity.WARNING, alerts.warning)):
        breach = _tier_breach(metrics, tier)
        if breach is not None:
            metric, reason = breach
            return SeverityAssessment(level=level, triggering_metric=metric, reason=reason)
    return SeverityAssessment(
        level=Severity.HEALTHY,
        reason=(
            f"P95 {metrics.p95_response_time:.2f} ms and error rate {metrics.error_rate:.2f}% "
            "are within warning thresholds"
        ),
    )


def analyze_trends(
    history: Sequence[RunRecord],
    metrics: MetricSet,
    alerts: AlertThresholds,
) -> TrendAnalysis:
    """Deltas between the last two runs plus the severity of the current run."""
    return TrendAnalysis(deltas=compute_deltas(history), severity=assess_severity(metrics, alerts))

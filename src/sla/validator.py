"""Evaluate a MetricSet against resolved SLA thresholds.

Result order is part of the contract (downstream reports index by position):
response-time percentiles ascending, error rate, throughput, then CPU and
memory when they were measured.
"""

import logging
from collections.abc import Callable
from typing import Literal, NamedTuple

from src.sla.config import (
    ERROR_RATE_KEY,
    P50_KEY,
    P90_KEY,
    P95_KEY,
    P99_KEY,
    THROUGHPUT_KEY,
    resolve_thresholds,
)
from src.sla.models import (
    CPU_METRIC,
    ERROR_RATE_METRIC,
    MEMORY_METRIC,
    P50_METRIC,
    P90_METRIC,
    P95_METRIC,
    P99_METRIC,
    THROUGHPUT_METRIC,
    UNAVAILABLE,
    InfrastructureMetrics,
    MetricSet,
    SlaConfig,
    ThresholdProfile,
    ValidationResult,
)

logger = logging.getLogger(__name__)

Direction = Literal["<=", ">="]


class _Rule(NamedTuple):
    metric: str
    key: str
    default: float | None  # None: no check unless configured
    direction: Direction
    actual: Callable[[MetricSet], float]


# Mandatory keys (p95, error rate) are guaranteed present by resolve_thresholds.
_PERFORMANCE_RULES: tuple[_Rule, ...] = (
    _Rule(P50_METRIC, P50_KEY, 200.0, "<=", lambda m: m.p50_response_time),
    _Rule(P90_METRIC, P90_KEY, 400.0, "<=", lambda m: m.p90_response_time),
    _Rule(P95_METRIC, P95_KEY, None, "<=", lambda m: m.p95_response_time),
    _Rule(P99_METRIC, P99_KEY, 1000.0, "<=", lambda m: m.p99_response_time),
    _Rule(ERROR_RATE_METRIC, ERROR_RATE_KEY, None, "<=", lambda m: m.error_rate),
    _Rule(THROUGHPUT_METRIC, THROUGHPUT_KEY, None, ">=", lambda m: m.throughput),
)


def _format_bound(bound: float) -> str:
    return str(int(bound)) if bound.is_integer() else str(bound)


def _compare(actual: float, bound: float, direction: Direction) -> bool:
    return actual <= bound if direction == "<=" else actual >= bound


def _performance_results(metrics: MetricSet, thresholds: ThresholdProfile) -> list[ValidationResult]:
    results: list[ValidationResult] = []
    for rule in _PERFORMANCE_RULES:
        bound = thresholds.get(rule.key)
        if bound is None:
            bound = rule.default
        if bound is None:
            continue
        actual = rule.actual(metrics)
        results.append(
            ValidationResult(
                metric=rule.metric,
                actual=f"{actual:.2f}",
                threshold=f"{rule.direction} {_format_bound(bound)}",
                passed=_compare(actual, bound, rule.direction),
            )
        )
    return results


def _infrastructure_result(metric: str, raw_value: str, bound: float) -> ValidationResult | None:
    """Check one infrastructure reading. Unavailable readings produce no result."""
    if raw_value == UNAVAILABLE:
        return None
    try:
        value = float(raw_value)
    except ValueError:
        # Measured but not numeric: reported as-is and counted as a failure.
        return ValidationResult(metric=metric, actual=raw_value, threshold=f"<= {_format_bound(bound)}", passed=False)
    return ValidationResult(
        metric=metric,
        actual=f"{value:.2f}",
        threshold=f"<= {_format_bound(bound)}",
        passed=value <= bound,
    )


def validate_metrics(
    metrics: MetricSet,
    infra: InfrastructureMetrics | None,
    thresholds: ThresholdProfile,
) -> list[ValidationResult]:
    """Evaluate metrics against already-resolved thresholds."""
    results = _performance_results(metrics, thresholds)

    if infra is not None:
        limits = thresholds.infrastructure
        for result in (
            _infrastructure_result(CPU_METRIC, infra.avg_cpu_usage, limits.max_cpu_usage_percent),
            _infrastructure_result(MEMORY_METRIC, infra.avg_memory_usage, limits.max_memory_usage_percent),
        ):
            if result is not None:
                results.append(result)

    for result in results:
        status = "PASS" if result.passed else "FAIL"
        logger.info("[%s] %s: %s (threshold: %s)", status, result.metric, result.actual, result.threshold)
    passed = sum(1 for r in results if r.passed)
    logger.info("Summary: %d/%d checks passed", passed, len(results))
    return results


def validate_against_sla(
    metrics: MetricSet,
    infra: InfrastructureMetrics | None,
    profile: str,
    config: SlaConfig,
) -> list[ValidationResult]:
    """Resolve thresholds for ``profile`` and evaluate ``metrics`` against them.

    Args:
        metrics: Normalized load-test metrics.
        infra: Infrastructure snapshot, or None when no source was queried.
        profile: Workload profile name selecting threshold overrides.
        config: Static SLA configuration.

    Returns:
        Ordered validation results. A failed check is ``passed=False``, not an error.

    Raises:
        ConfigurationError: If a mandatory threshold is missing for the profile.
    """
    thresholds = resolve_thresholds(config, profile)
    return validate_metrics(metrics, infra, thresholds)

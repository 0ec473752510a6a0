"""Normalize a k6 summary export into a canonical MetricSet.

Extraction is total: any field that is missing or not a number resolves to
zero through an ordered list of candidate lookups (first match wins). Only a
payload that is not a JSON object at all is rejected, with MalformedInputError.

Both k6 summary layouts are understood: the flat ``--summary-export`` form
(``{"http_reqs": {"count": 10, "rate": 2.5}}``) and the ``handleSummary`` form
where each metric nests its statistics under ``values``.
"""

import json
import math
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from src.sla.errors import MalformedInputError
from src.sla.models import CheckResult, EndpointMetric, MetricSet

logger = logging.getLogger(__name__)

# Custom k6 Trend metrics surfaced as endpoint rows: metric name -> display name.
# Only names registered here are read from the payload.
DEFAULT_ENDPOINT_METRICS: dict[str, str] = {
    "browse_duration": "GET /posts (Browse/List)",
    "api_duration": "API Dynamic endpoints (GET/POST)",
}

# Each entry: (metric name, field name). Evaluated in order, first numeric value wins.
_P50_CANDIDATES: list[tuple[str, str]] = [
    ("http_req_duration", "med"),
    ("http_req_duration", "median"),
    ("http_req_duration", "p(50)"),
]
_ERROR_RATE_CANDIDATES: list[tuple[str, str]] = [
    ("errors", "value"),
    ("errors", "rate"),
    ("http_req_failed", "value"),
    ("http_req_failed", "rate"),
]

_UNKNOWN_CHECK = "Unknown Check"


def parse_summary(text: str) -> dict[str, Any]:
    """Decode a k6 summary document.

    Raises:
        MalformedInputError: If the text is not JSON or not a JSON object.
    """
    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Load-test summary is not valid JSON: {exc}"
        raise MalformedInputError(msg) from exc
    if not isinstance(payload, dict):
        msg = f"Load-test summary must be a JSON object, got {type(payload).__name__}"
        raise MalformedInputError(msg)
    return payload


def load_summary(path: str | Path) -> dict[str, Any]:
    """Read and decode a k6 summary file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read load-test summary {path}: {exc}"
        raise MalformedInputError(msg) from exc
    return parse_summary(text)


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if not isinstance(value, int | float):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # inf and NaN (both accepted by json.loads) count as missing
    return number if math.isfinite(number) else None


def _metric_fields(metrics: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return the statistics mapping of one k6 metric, whichever layout it uses."""
    metric = metrics.get(name)
    if not isinstance(metric, Mapping):
        return {}
    nested = metric.get("values")
    if isinstance(nested, Mapping):
        return nested
    return metric


def _first_number(
    metrics: Mapping[str, Any],
    candidates: Sequence[tuple[str, str]],
    default: float = 0.0,
) -> float:
    for metric_name, field in candidates:
        value = _as_number(_metric_fields(metrics, metric_name).get(field))
        if value is not None:
            return value
    return default


def _field(metrics: Mapping[str, Any], metric_name: str, field: str) -> float:
    return _first_number(metrics, [(metric_name, field)])


def _to_check(raw: object) -> CheckResult | None:
    if not isinstance(raw, Mapping):
        return None
    name = raw.get("name")
    passes = _as_number(raw.get("passes"))
    fails = _as_number(raw.get("fails"))
    return CheckResult(
        name=name if isinstance(name, str) and name else _UNKNOWN_CHECK,
        passes=int(passes or 0),
        fails=int(fails or 0),
    )


def _extract_checks(summary: Mapping[str, Any]) -> list[CheckResult]:
    """Normalize ``root_group.checks`` (a list, or a mapping keyed by check name)."""
    root_group = summary.get("root_group")
    if not isinstance(root_group, Mapping):
        return []
    raw_checks = root_group.get("checks")
    if isinstance(raw_checks, Mapping):
        entries: list[object] = list(raw_checks.values())
    elif isinstance(raw_checks, list):
        entries = list(raw_checks)
    else:
        return []
    return [check for check in map(_to_check, entries) if check is not None]


def _extract_endpoints(metrics: Mapping[str, Any], registry: Mapping[str, str]) -> list[EndpointMetric]:
    endpoints: list[EndpointMetric] = []
    for metric_name, display_name in registry.items():
        if not isinstance(metrics.get(metric_name), Mapping):
            continue
        avg = _field(metrics, metric_name, "avg")
        endpoints.append(EndpointMetric(name=display_name, avg_duration_ms=round(avg, 2)))
    return endpoints


def extract_metrics(
    summary: Mapping[str, Any],
    endpoint_metrics: Mapping[str, str] | None = None,
) -> MetricSet:
    """Build a MetricSet from a decoded k6 summary.

    Args:
        summary: Decoded summary payload (see parse_summary).
        endpoint_metrics: Custom trend registry (metric name -> display name).
            Defaults to DEFAULT_ENDPOINT_METRICS.

    Returns:
        A fully populated MetricSet. Missing values are zero, never an error.
    """
    raw_metrics = summary.get("metrics")
    metrics: Mapping[str, Any] = raw_metrics if isinstance(raw_metrics, Mapping) else {}
    registry = DEFAULT_ENDPOINT_METRICS if endpoint_metrics is None else endpoint_metrics

    metric_set = MetricSet(
        p50_response_time=_first_number(metrics, _P50_CANDIDATES),
        p90_response_time=_field(metrics, "http_req_duration", "p(90)"),
        p95_response_time=_field(metrics, "http_req_duration", "p(95)"),
        p99_response_time=_field(metrics, "http_req_duration", "p(99)"),
        avg_response_time=_field(metrics, "http_req_duration", "avg"),
        min_response_time=_field(metrics, "http_req_duration", "min"),
        max_response_time=_field(metrics, "http_req_duration", "max"),
        error_rate=_first_number(metrics, _ERROR_RATE_CANDIDATES) * 100,
        throughput=_field(metrics, "http_reqs", "rate"),
        total_requests=int(_field(metrics, "http_reqs", "count")),
        iterations=int(_field(metrics, "iterations", "count")),
        endpoints=tuple(_extract_endpoints(metrics, registry)),
        checks=tuple(_extract_checks(summary)),
    )

    logger.info("P50 response time: %.2f ms", metric_set.p50_response_time)
    logger.info("P90 response time: %.2f ms", metric_set.p90_response_time)
    logger.info("P95 response time: %.2f ms", metric_set.p95_response_time)
    logger.info("P99 response time: %.2f ms", metric_set.p99_response_time)
    logger.info("Avg response time: %.2f ms", metric_set.avg_response_time)
    logger.info("Error rate: %.2f%%", metric_set.error_rate)
    logger.info("Throughput: %.2f req/s", metric_set.throughput)
    logger.info("Total requests: %d", metric_set.total_requests)
    return metric_set

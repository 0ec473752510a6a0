"""Pydantic models for metrics, thresholds, validation results and run history."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

UNAVAILABLE = "N/A"

# Display names double as RunRecord metric keys and ValidationResult labels.
P50_METRIC = "P50 Response Time (ms)"
P90_METRIC = "P90 Response Time (ms)"
P95_METRIC = "P95 Response Time (ms)"
P99_METRIC = "P99 Response Time (ms)"
ERROR_RATE_METRIC = "Error Rate (%)"
THROUGHPUT_METRIC = "Throughput (req/s)"
CPU_METRIC = "CPU Usage (%)"
MEMORY_METRIC = "Memory Usage (%)"


class EndpointMetric(BaseModel):
    """Average duration of one registered custom k6 trend."""

    model_config = ConfigDict(frozen=True)

    name: str
    avg_duration_ms: float = 0.0


class CheckResult(BaseModel):
    """Pass/fail counters for one k6 check."""

    model_config = ConfigDict(frozen=True)

    name: str
    passes: int = 0
    fails: int = 0


class MetricSet(BaseModel):
    """Canonical snapshot of one load-test run. All durations in milliseconds."""

    model_config = ConfigDict(frozen=True)

    p50_response_time: float = 0.0
    p90_response_time: float = 0.0
    p95_response_time: float = 0.0
    p99_response_time: float = 0.0
    avg_response_time: float = 0.0
    min_response_time: float = 0.0
    max_response_time: float = 0.0
    error_rate: float = 0.0
    throughput: float = 0.0
    total_requests: int = 0
    iterations: int = 0
    endpoints: tuple[EndpointMetric, ...] = ()
    checks: tuple[CheckResult, ...] = ()


class InfrastructureMetrics(BaseModel):
    """Aggregated host usage during the run. Values are numeric strings or "N/A"."""

    model_config = ConfigDict(frozen=True)

    avg_cpu_usage: str = UNAVAILABLE
    max_cpu_usage: str = UNAVAILABLE
    avg_memory_usage: str = UNAVAILABLE
    max_memory_usage: str = UNAVAILABLE


class InfrastructureLimits(BaseModel):
    max_cpu_usage_percent: float = 80.0
    max_memory_usage_percent: float = 85.0


class AlertTier(BaseModel):
    p95_response_time_ms: float
    max_error_rate_percent: float


class AlertThresholds(BaseModel):
    """Two-tier alert table used for severity classification."""

    warning: AlertTier = Field(
        default_factory=lambda: AlertTier(p95_response_time_ms=800, max_error_rate_percent=3)
    )
    critical: AlertTier = Field(
        default_factory=lambda: AlertTier(p95_response_time_ms=2000, max_error_rate_percent=10)
    )


class SlaConfig(BaseModel):
    """Static SLA configuration as loaded from the thresholds file.

    ``performance`` holds the global defaults, ``profiles`` the per-profile
    overrides. A ``None`` value counts as unset.
    """

    performance: dict[str, float | None] = Field(default_factory=dict)
    infrastructure: InfrastructureLimits = Field(default_factory=InfrastructureLimits)
    profiles: dict[str, dict[str, float | None]] = Field(default_factory=dict)
    alerts: AlertThresholds = Field(default_factory=AlertThresholds)


class ThresholdProfile(BaseModel):
    """Thresholds resolved for one run: profile overrides laid over the defaults."""

    model_config = ConfigDict(frozen=True)

    profile: str
    bounds: dict[str, float]
    infrastructure: InfrastructureLimits = Field(default_factory=InfrastructureLimits)

    def get(self, key: str) -> float | None:
        return self.bounds.get(key)


class ValidationResult(BaseModel):
    """One evaluated metric."""

    model_config = ConfigDict(frozen=True)

    metric: str
    actual: str
    threshold: str
    passed: bool


class RunMetric(BaseModel):
    model_config = ConfigDict(frozen=True)

    actual: str
    threshold: str
    passed: bool


class RunRecord(BaseModel):
    """One persisted run. Created once at the end of a run, never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str  # ISO 8601
    profile: str = "default"
    target_url: str | None = None
    duration: str | None = None
    metrics: dict[str, RunMetric] = Field(default_factory=dict)
    passed_count: int = 0
    failed_count: int = 0


class MetricDelta(BaseModel):
    """Change of one metric between the previous and the current run."""

    model_config = ConfigDict(frozen=True)

    metric: str
    previous: float
    current: float
    delta_percent: float
    improved: bool


class Severity(StrEnum):
    HEALTHY = "Healthy"
    WARNING = "Warning"
    CRITICAL = "Critical"


class SeverityAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Severity
    triggering_metric: str | None = None
    reason: str


class TrendAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    deltas: list[MetricDelta] = Field(default_factory=list)
    severity: SeverityAssessment

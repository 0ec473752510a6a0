"""End-to-end validation run: load test, extraction, SLA checks, history, reports.

Stages run strictly in sequence. Structural failures (bad config, missing or
malformed summary, k6 failure) raise SlaError subclasses; everything else
(Prometheus, Grafana, notifications, history writes) degrades and continues.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from src.config import get_settings
from src.integrations.grafana import close_annotation, create_annotation
from src.integrations.k6 import k6_version, run_k6
from src.integrations.prometheus import check_connection, collect_infrastructure_metrics
from src.notify.dispatch import send_notifications
from src.observability.metrics import PIPELINE_DURATION, RUNS_TOTAL, record_validation
from src.report.writers import RunMetadata, write_reports
from src.sla.config import load_sla_config, resolve_thresholds
from src.sla.errors import LoadTestError
from src.sla.extractor import extract_metrics, load_summary
from src.sla.history import RunHistoryStore, build_run_record
from src.sla.models import MetricSet, RunRecord, TrendAnalysis, ValidationResult
from src.sla.trends import analyze_trends
from src.sla.validator import validate_metrics

logger = logging.getLogger(__name__)

SUMMARY_FILE = "k6-summary.json"
RAW_OUTPUT_FILE = "k6-raw.json"
HISTORY_FILE = "history.json"


@dataclass
class PipelineOutcome:
    profile: str
    results: list[ValidationResult]
    metrics: MetricSet
    trends: TrendAnalysis
    history: list[RunRecord] = field(default_factory=list)
    reports: list[Path] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)


async def run_pipeline(
    profile: str,
    *,
    skip_k6: bool = False,
    dry_run: bool = False,
    summary_path: Path | None = None,
) -> PipelineOutcome | None:
    """Run one validation for ``profile``.

    Args:
        profile: Workload profile name (selects k6 stages and SLA overrides).
        skip_k6: Reuse the summary from a previous k6 run.
        dry_run: Check configuration and prerequisites only. Returns None.
        summary_path: Validate an existing summary file instead of running k6.

    Raises:
        ConfigurationError: The SLA config is unreadable or incomplete.
        LoadTestError: k6 failed or produced no summary.
        MalformedInputError: The summary is not valid JSON.
    """
    settings = get_settings()
    started_at = datetime.now(UTC)
    start = time.monotonic()
    reports_dir = Path(settings.reports_dir)

    # Configuration problems must surface before any work starts.
    sla_config = load_sla_config(settings.sla_config_path)
    thresholds = resolve_thresholds(sla_config, profile)

    logger.info("[0/6] Verifying prerequisites")
    if summary_path is None and not skip_k6:
        version = await asyncio.to_thread(k6_version)
        if version is None:
            msg = f"k6 binary '{settings.k6_binary}' not found"
            raise LoadTestError(msg)
        logger.info("k6: %s", version)
    if settings.prometheus_url:
        if await check_connection():
            logger.info("Prometheus: reachable at %s", settings.prometheus_url)
        else:
            logger.warning("Prometheus at %s is unreachable, infrastructure metrics may be N/A", settings.prometheus_url)

    annotation_id = await create_annotation(
        f"Load Test Started: Profile - {profile}", ["load-test", "performance", profile]
    )

    try:
        logger.info("[1/6] Running k6 load test (%s profile)", profile)
        if summary_path is None:
            summary_path = reports_dir / SUMMARY_FILE
            ok = await asyncio.to_thread(
                run_k6,
                profile,
                settings.target_url,
                summary_path,
                reports_dir / RAW_OUTPUT_FILE,
                skip=skip_k6,
                dry_run=dry_run,
            )
            if not ok:
                msg = f"k6 execution failed or summary {summary_path} is missing"
                raise LoadTestError(msg)
        if dry_run:
            logger.info("Dry run complete for profile %s", profile)
            await close_annotation(annotation_id, f"Dry run: profile {profile}")
            return None

        logger.info("[2/6] Extracting performance metrics")
        metrics = extract_metrics(load_summary(summary_path))

        logger.info("[3/6] Querying infrastructure metrics")
        infra = await collect_infrastructure_metrics(started_at, datetime.now(UTC))

        logger.info("[4/6] Validating against SLAs")
        results = validate_metrics(metrics, infra, thresholds)

        logger.info("[5/6] Recording history, reports and notifications")
        duration = f"{time.monotonic() - start:.2f}s"
        record = build_run_record(results, profile=profile, target_url=settings.target_url, duration=duration)
        history = RunHistoryStore(reports_dir / HISTORY_FILE).append(record)
        trends = analyze_trends(history, metrics, sla_config.alerts)
        logger.info("Severity: %s (%s)", trends.severity.level.value, trends.severity.reason)

        metadata = RunMetadata(profile=profile, target_url=settings.target_url, duration=duration)
        reports = write_reports(reports_dir, results, metadata, metrics, trends, history)
        await send_notifications(results, trends.severity, dict(metadata))
        record_validation(profile, results, trends.severity)
    except Exception:
        RUNS_TOTAL.labels(profile=profile, status="error").inc()
        await close_annotation(annotation_id, f"Test ERROR: profile {profile}")
        raise

    outcome = PipelineOutcome(
        profile=profile,
        results=results,
        metrics=metrics,
        trends=trends,
        history=history,
        reports=reports,
    )
    status = "passed" if outcome.passed else "failed"
    RUNS_TOTAL.labels(profile=profile, status=status).inc()
    PIPELINE_DURATION.labels(profile=profile).observe(time.monotonic() - start)

    logger.info("[6/6] Finalizing test run")
    await close_annotation(
        annotation_id,
        f"Test {status.upper()}: {record.passed_count}/{len(results)} checks passed",
    )
    return outcome

"""Infrastructure usage summary from the Prometheus HTTP API.

Queries CPU and memory usage over the load-test window and reduces each to an
average and a maximum. Anything that cannot be fetched is reported as "N/A"
so the SLA validator skips that check instead of failing it. Never raises.
"""

import asyncio
import logging
from datetime import datetime

import httpx

from src.config import get_settings
from src.sla.models import UNAVAILABLE, InfrastructureMetrics

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_STEP = "15s"


async def _query_range(
    client: httpx.AsyncClient,
    query: str,
    start: datetime,
    end: datetime,
) -> list[dict[str, object]]:
    """Run a range query with bounded retries. Returns [] when all attempts fail."""
    settings = get_settings()
    attempts = max(settings.prometheus_retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            resp = await client.get(
                f"{settings.prometheus_url}/api/v1/query_range",
                params={
                    "query": query,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "step": DEFAULT_STEP,
                },
                timeout=DEFAULT_TIMEOUT_SECONDS,
            )
            _ = resp.raise_for_status()
            body: dict[str, object] = resp.json()
            if body.get("status") == "success":
                data = body.get("data")
                if isinstance(data, dict):
                    result = data.get("result")
                    if isinstance(result, list):
                        return result
                return []
            logger.warning("Prometheus returned status %r for query: %.50s", body.get("status"), query)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Prometheus attempt %d/%d failed for query %.50s: %s", attempt, attempts, query, exc)

        if attempt < attempts:
            await asyncio.sleep(settings.prometheus_retry_delay_seconds * attempt)

    logger.error("All Prometheus retries exhausted for query: %.50s", query)
    return []


def _series_values(results: list[dict[str, object]]) -> list[float]:
    """Float samples of the first series in a range query result."""
    if not results:
        return []
    raw_values = results[0].get("values")
    if not isinstance(raw_values, list):
        return []
    values: list[float] = []
    for sample in raw_values:
        if isinstance(sample, list) and len(sample) >= 2:
            try:
                values.append(float(str(sample[1])))
            except ValueError:
                continue
    return values


def _summarize(values: list[float]) -> tuple[str, str]:
    """Return (average, max) formatted to two decimals, or "N/A" for no data."""
    if not values:
        return UNAVAILABLE, UNAVAILABLE
    return f"{sum(values) / len(values):.2f}", f"{max(values):.2f}"


async def collect_infrastructure_metrics(start: datetime, end: datetime) -> InfrastructureMetrics:
    """Summarize CPU and memory usage between ``start`` and ``end``.

    Returns all-"N/A" metrics when Prometheus is not configured or unreachable.
    """
    settings = get_settings()
    if not settings.prometheus_url:
        logger.info("Skipping Prometheus (PROMETHEUS_URL not set)")
        return InfrastructureMetrics()

    async with httpx.AsyncClient() as client:
        cpu_results, memory_results = await asyncio.gather(
            _query_range(client, settings.cpu_query, start, end),
            _query_range(client, settings.memory_query, start, end),
        )

    avg_cpu, max_cpu = _summarize(_series_values(cpu_results))
    avg_memory, max_memory = _summarize(_series_values(memory_results))
    metrics = InfrastructureMetrics(
        avg_cpu_usage=avg_cpu,
        max_cpu_usage=max_cpu,
        avg_memory_usage=avg_memory,
        max_memory_usage=max_memory,
    )
    logger.info("Avg CPU usage: %s%%, max: %s%%", avg_cpu, max_cpu)
    logger.info("Avg memory usage: %s%%, max: %s%%", avg_memory, max_memory)
    return metrics


async def check_connection() -> bool:
    """Return True if Prometheus answers a trivial instant query."""
    settings = get_settings()
    if not settings.prometheus_url:
        return False
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.get(f"{settings.prometheus_url}/api/v1/query", params={"query": "up"})
            _ = resp.raise_for_status()
            body: dict[str, object] = resp.json()
            return body.get("status") == "success"
    except (httpx.HTTPError, ValueError):
        logger.warning("Prometheus connection check failed", exc_info=True)
        return False

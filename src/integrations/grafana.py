"""Grafana annotations marking the start and end of a load-test run.

Both calls are best-effort: they no-op without credentials and log errors
instead of raising.
"""

import logging
import time

import httpx

from src.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


def is_grafana_configured() -> bool:
    settings = get_settings()
    return bool(settings.grafana_url and settings.grafana_token)


def _grafana_headers() -> dict[str, str]:
    settings = get_settings()
    return {
        "Authorization": f"Bearer {settings.grafana_token}",
        "Content-Type": "application/json",
    }


async def create_annotation(text: str, tags: list[str]) -> int | None:
    """Create a region annotation starting now. Returns its id, or None on failure."""
    if not is_grafana_configured():
        logger.info("Grafana not configured, skipping annotation")
        return None

    url = f"{get_settings().grafana_url}/api/annotations"
    payload = {"time": int(time.time() * 1000), "text": text, "tags": tags}
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            response = await client.post(url, headers=_grafana_headers(), json=payload)
            _ = response.raise_for_status()
            body: dict[str, object] = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Failed to create Grafana annotation: %s", exc)
        return None

    annotation_id = body.get("id")
    if not isinstance(annotation_id, int):
        logger.warning("Grafana annotation response had no id: %s", body)
        return None
    logger.info("Grafana annotation %d added: %s", annotation_id, text)
    return annotation_id


async def close_annotation(annotation_id: int | None, text: str | None = None) -> bool:
    """Set the end time (and optionally replace the text) of an annotation."""
    if annotation_id is None or not is_grafana_configured():
        return False

    url = f"{get_settings().grafana_url}/api/annotations/{annotation_id}"
    payload: dict[str, object] = {"timeEnd": int(time.time() * 1000)}
    if text:
        payload["text"] = text
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            response = await client.patch(url, headers=_grafana_headers(), json=payload)
            _ = response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Failed to close Grafana annotation %d: %s", annotation_id, exc)
        return False

    logger.info("Grafana annotation %d closed", annotation_id)
    return True

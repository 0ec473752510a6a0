"""Webhook notifications for validated runs.

The payload shape is picked from the webhook URL: Slack blocks, a Discord
embed, a Teams MessageCard, or a generic JSON document for anything else.
Sending never raises: it returns True/False and logs failures.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Literal

import httpx

from src.config import get_settings
from src.sla.models import Severity, SeverityAssessment, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

Platform = Literal["slack", "discord", "teams", "generic"]

_SEVERITY_COLORS: dict[Severity, str] = {
    Severity.HEALTHY: "#10b981",
    Severity.WARNING: "#f59e0b",
    Severity.CRITICAL: "#ef4444",
}


def detect_platform(url: str) -> Platform:
    if "slack.com" in url:
        return "slack"
    if "discord.com" in url or "discordapp.com" in url:
        return "discord"
    if "office.com" in url:
        return "teams"
    return "generic"


def _title(results: Sequence[ValidationResult], severity: SeverityAssessment) -> str:
    failed = sum(1 for r in results if not r.passed)
    status = "PASSED" if failed == 0 else "FAILED"
    return f"Performance Test {status} ({severity.level.value})"


def _result_line(result: ValidationResult) -> str:
    mark = "PASS" if result.passed else "FAIL"
    return f"[{mark}] {result.metric}: {result.actual} (threshold: {result.threshold})"


def build_slack_payload(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
    report_url: str = "",
) -> dict[str, Any]:
    failed = [r for r in results if not r.passed]
    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": _title(results, severity)}},
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": (
                        f"*Profile:* {metadata.get('profile', 'default')} | "
                        f"*Duration:* {metadata.get('duration', 'N/A')} | "
                        f"*Target:* {metadata.get('target_url', 'N/A')}"
                    ),
                }
            ],
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Passed Checks:*\n{len(results) - len(failed)}"},
                {"type": "mrkdwn", "text": f"*Failed Checks:*\n{len(failed)}"},
            ],
        },
    ]
    if failed:
        failed_text = "\n".join(f"• *{r.metric}*: {r.actual} (threshold: {r.threshold})" for r in failed)
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"*Failed SLAs:*\n{failed_text}"}})
    blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": severity.reason}})
    if report_url:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": f"<{report_url}|View full report>"}})
    return {"blocks": blocks, "text": _title(results, severity)}


def build_discord_payload(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
    report_url: str = "",
) -> dict[str, Any]:
    settings = get_settings()
    failed = any(not r.passed for r in results)
    embed: dict[str, Any] = {
        "title": _title(results, severity),
        "description": "\n".join(_result_line(r) for r in results),
        "color": int(_SEVERITY_COLORS[severity.level].lstrip("#"), 16),
        "fields": [
            {"name": "Profile", "value": metadata.get("profile", "default"), "inline": True},
            {"name": "Duration", "value": metadata.get("duration", "N/A"), "inline": True},
        ],
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if report_url:
        embed["url"] = report_url
    content = ""
    if failed and settings.discord_role_id:
        content = f"<@&{settings.discord_role_id}> SLA Violations Detected!"
    return {"content": content, "embeds": [embed]}


def build_teams_payload(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
    report_url: str = "",
) -> dict[str, Any]:
    section: dict[str, Any] = {
        "activityTitle": _title(results, severity),
        "activitySubtitle": f"Profile: {metadata.get('profile', 'default')} | Target: {metadata.get('target_url', 'N/A')}",
        "facts": [{"name": r.metric, "value": f"{r.actual} ({'PASS' if r.passed else 'FAIL'})"} for r in results],
        "markdown": True,
    }
    if report_url:
        section["potentialAction"] = [
            {"@type": "OpenUri", "name": "View Report", "targets": [{"os": "default", "uri": report_url}]}
        ]
    return {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "themeColor": _SEVERITY_COLORS[severity.level].lstrip("#"),
        "summary": _title(results, severity),
        "sections": [section],
    }


def build_generic_payload(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
    report_url: str = "",
) -> dict[str, Any]:
    failed = sum(1 for r in results if not r.passed)
    return {
        "severity": severity.model_dump(mode="json"),
        "timestamp": datetime.now(UTC).isoformat(),
        "profile": metadata.get("profile"),
        "target_url": metadata.get("target_url"),
        "report_url": report_url,
        "results": [r.model_dump() for r in results],
        "summary": {"passed": len(results) - failed, "failed": failed, "total": len(results)},
    }


_BUILDERS = {
    "slack": build_slack_payload,
    "discord": build_discord_payload,
    "teams": build_teams_payload,
    "generic": build_generic_payload,
}


def is_webhook_configured() -> bool:
    return bool(get_settings().webhook_url)


async def send_webhook_notification(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
) -> bool:
    """Post the run outcome to the configured webhook.

    Returns:
        True if the webhook accepted the payload, False otherwise.
    """
    settings = get_settings()
    if not is_webhook_configured():
        logger.info("Webhook not configured, skipping notification")
        return False

    platform = detect_platform(settings.webhook_url)
    payload = _BUILDERS[platform](results, severity, metadata, settings.report_url)
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.webhook_url, json=payload)
            _ = response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Failed to send %s webhook notification: %s", platform, exc)
        return False

    logger.info("%s webhook notification sent", platform.capitalize())
    return True

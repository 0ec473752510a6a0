"""Email delivery for SLA validation summaries.

Uses stdlib smtplib with STARTTLS. All functions are designed to never
raise: they return success/failure booleans and log errors.
"""

import logging
import smtplib
from collections.abc import Sequence
from email.mime.text import MIMEText

from src.config import get_settings
from src.sla.models import SeverityAssessment, ValidationResult

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    """Check whether all required SMTP settings are present."""
    settings = get_settings()
    return bool(
        settings.smtp_host and settings.smtp_username and settings.smtp_password and settings.report_recipient_email
    )


def build_email_body(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
    report_url: str = "",
) -> str:
    """Plain-text body listing every check, failures first."""
    failed = [r for r in results if not r.passed]
    lines = [
        f"Severity: {severity.level.value.upper()}",
        severity.reason,
        "",
        f"Profile:  {metadata.get('profile', 'default')}",
        f"Target:   {metadata.get('target_url', 'N/A')}",
        f"Duration: {metadata.get('duration', 'N/A')}",
        f"Checks:   {len(results) - len(failed)}/{len(results)} passed",
        "",
    ]
    if failed:
        lines.append("Failed SLAs:")
        lines.extend(f"  - {r.metric}: {r.actual} (threshold: {r.threshold})" for r in failed)
        lines.append("")
    lines.append("All checks:")
    lines.extend(f"  [{'PASS' if r.passed else 'FAIL'}] {r.metric}: {r.actual}" for r in results)
    if report_url:
        lines.extend(["", f"Full report: {report_url}"])
    return "\n".join(lines)


def send_report_email(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
) -> bool:
    """Send the run summary via SMTP with STARTTLS.

    Returns:
        True if the email was sent successfully, False otherwise.
    """
    settings = get_settings()

    if not is_email_configured():
        logger.info("Email not configured, skipping send")
        return False

    failed = sum(1 for r in results if not r.passed)
    status = "PASSED" if failed == 0 else "FAILED"
    subject = f"[{severity.level.value.upper()}] Performance Test {status}: {metadata.get('profile', 'default')}"

    msg = MIMEText(build_email_body(results, severity, metadata, settings.report_url), "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.email_from or settings.smtp_username
    msg["To"] = settings.report_recipient_email

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            _ = server.starttls()
            server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
        logger.info("Report email sent to %s", settings.report_recipient_email)
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send report email")
        return False

"""Fan a run outcome out to every configured notification channel."""

import asyncio
import logging
from collections.abc import Sequence

from src.notify.email import is_email_configured, send_report_email
from src.notify.webhook import is_webhook_configured, send_webhook_notification
from src.sla.models import SeverityAssessment, ValidationResult

logger = logging.getLogger(__name__)


async def send_notifications(
    results: Sequence[ValidationResult],
    severity: SeverityAssessment,
    metadata: dict[str, str],
) -> dict[str, bool]:
    """Notify webhook and email channels. Returns delivery status per channel."""
    sent: dict[str, bool] = {"webhook": False, "email": False}
    if is_webhook_configured():
        sent["webhook"] = await send_webhook_notification(results, severity, metadata)
    if is_email_configured():
        sent["email"] = await asyncio.to_thread(send_report_email, results, severity, metadata)
    logger.info("Notifications sent: webhook=%s, email=%s", sent["webhook"], sent["email"])
    return sent

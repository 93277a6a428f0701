"""Notifier: best-effort templated email.

Sending never raises for delivery problems: a rejected message, an
unreachable provider or a timeout all come back as a failed
NotificationResult that the caller logs. Callers finalize first and notify
afterwards, so a lost email never rolls back state.
"""

from dataclasses import dataclass

import structlog

from commerce.errors import UpstreamError
from commerce.notification.port import EmailPort
from commerce.notification.templates import get_template
from commerce.notification.types import NotificationType

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    delivered: bool
    message_id: str | None = None
    error: str | None = None


class Notifier:
    def __init__(self, email: EmailPort) -> None:
        self.email = email

    def send(self, notification_type: NotificationType, to: str, context: dict) -> NotificationResult:
        content = get_template(notification_type.value).render(context)

        try:
            outcome = self.email.send(to=to, subject=content["subject"], body=content["body"])
        except (UpstreamError, TimeoutError, ConnectionError) as exc:
            logger.warning(
                "Notification provider unreachable",
                notification_type=notification_type.value,
                recipient=to,
                error=str(exc),
            )
            return NotificationResult(delivered=False, error=str(exc))

        if outcome.get("status") == "sent":
            logger.info(
                "Notification sent",
                notification_type=notification_type.value,
                recipient=to,
                message_id=outcome.get("message_id"),
            )
            return NotificationResult(delivered=True, message_id=outcome.get("message_id"))

        error = outcome.get("error", "Unknown dispatch error")
        logger.warning(
            "Notification rejected",
            notification_type=notification_type.value,
            recipient=to,
            error=error,
        )
        return NotificationResult(delivered=False, error=error)

"""Notification transports called by the dispatcher."""

from typing import Protocol

from src.shepherd.core.config import Settings
from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications.email import send_event_email
from src.shepherd.core.notifications.events import NotificationEvent

logger = get_logger(__name__)


class NotificationTransport(Protocol):
    async def send(self, event: NotificationEvent) -> None:
        """Deliver one event. Raising signals a failed delivery."""
        ...


class LoggingTransport:
    """Writes events to the structured log. Default for development."""

    async def send(self, event: NotificationEvent) -> None:
        logger.info(
            "Notification",
            event_id=str(event.id),
            event_type=event.type.value,
            tenant_id=str(event.tenant_id),
            recipients=[str(r) for r in event.recipient_ids],
        )


class EmailTransport:
    """Delivers events by email via Resend."""

    async def send(self, event: NotificationEvent) -> None:
        sent = await send_event_email(event)
        if not sent:
            logger.debug("Notification has no email recipients", event_id=str(event.id))


def build_transport(settings: Settings) -> NotificationTransport:
    if settings.notification_transport == "email":
        return EmailTransport()
    return LoggingTransport()

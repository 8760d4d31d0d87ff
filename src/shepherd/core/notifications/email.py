"""Email delivery using the Resend API."""

import asyncio
import html
from concurrent.futures import ThreadPoolExecutor

import resend

from src.shepherd.core.config import get_settings
from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications.events import NotificationEvent
from src.shepherd.models.enums import EventType

logger = get_logger(__name__)

# Resend's client is blocking; keep it off the event loop.
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"

_SUBJECTS: dict[EventType, str] = {
    EventType.PRINCIPAL_ADMITTED: "Welcome to {tenant_name}",
    EventType.PRINCIPAL_ROLE_CHANGED: "Your role has been updated",
    EventType.FOLLOWUP_ASSIGNED: "New newcomer assigned to you",
    EventType.FOLLOWUP_REASSIGNED: "A follow-up was reassigned",
    EventType.FOLLOWUP_STATUS_CHANGED: "Follow-up status updated",
}


def render_subject(event: NotificationEvent) -> str:
    template = _SUBJECTS.get(event.type, "Notification")
    return template.format(tenant_name=event.payload.get("tenant_name", "your organization"))


def render_html(event: NotificationEvent) -> str:
    """Render a minimal HTML body. Every payload value is escaped."""
    message = html.escape(str(event.payload.get("message", "")))
    title = html.escape(render_subject(event))
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">{title}</h1>
    <p>{message}</p>
    <p style="{_MUTED_STYLE} margin-top: 32px;">
        You are receiving this because of activity in your organization.
    </p>
</body>
</html>"""


async def send_event_email(event: NotificationEvent) -> bool:
    """Send an event to its recipient emails.

    Returns:
        True if sent (or logged in dev mode), False when there was nobody to send to.

    Raises:
        Exception: any Resend error, for the dispatcher to log.
    """
    settings = get_settings()
    if not event.recipient_emails:
        return False

    if not settings.resend_api_key:
        # Dev mode: log instead of sending
        logger.warning(
            "RESEND_API_KEY not set - email not sent",
            event_id=str(event.id),
            event_type=event.type.value,
        )
        return True

    resend.api_key = settings.resend_api_key
    params = {
        "from": settings.email_from,
        "to": event.recipient_emails,
        "subject": render_subject(event),
        "html": render_html(event),
    }
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(_email_executor, resend.Emails.send, params)
    logger.info("Notification email sent", event_id=str(event.id), event_type=event.type.value)
    return True

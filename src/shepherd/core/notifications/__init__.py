"""Notification side effects - events, dispatcher, transports."""

from src.shepherd.core.notifications.dedup import EventDeduplicator
from src.shepherd.core.notifications.dispatcher import NotificationDispatcher
from src.shepherd.core.notifications.events import NotificationEvent, event_id_for
from src.shepherd.core.notifications.transports import (
    EmailTransport,
    LoggingTransport,
    NotificationTransport,
    build_transport,
)

__all__ = [
    "EmailTransport",
    "EventDeduplicator",
    "LoggingTransport",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationTransport",
    "build_transport",
    "event_id_for",
]

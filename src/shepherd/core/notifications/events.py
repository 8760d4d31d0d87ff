"""Notification events describing user-visible transitions."""

from datetime import datetime
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

from pydantic import BaseModel, Field

from src.shepherd.models.base import utc_now
from src.shepherd.models.enums import EventType

_EVENT_NAMESPACE = uuid5(NAMESPACE_URL, "urn:shepherd:notification-event")


def event_id_for(event_type: EventType, entity_id: UUID, discriminator: str = "") -> UUID:
    """Deterministic event id for one transition of one entity.

    Emitting the same transition twice yields the same id, which is what the
    dispatcher deduplicates on.
    """
    return uuid5(_EVENT_NAMESPACE, f"{event_type.value}:{entity_id}:{discriminator}")


class NotificationEvent(BaseModel):
    """One transition, addressed to zero or more principals of a tenant."""

    id: UUID
    type: EventType
    tenant_id: UUID
    recipient_ids: list[UUID] = Field(default_factory=list)
    recipient_emails: list[str] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    @classmethod
    def for_transition(
        cls,
        event_type: EventType,
        entity_id: UUID,
        tenant_id: UUID,
        discriminator: str = "",
        **fields: Any,
    ) -> "NotificationEvent":
        return cls(
            id=event_id_for(event_type, entity_id, discriminator),
            type=event_type,
            tenant_id=tenant_id,
            **fields,
        )

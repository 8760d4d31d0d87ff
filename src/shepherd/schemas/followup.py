from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.shepherd.models import FollowUpStatus


class FollowUpAssign(BaseModel):
    guest_id: UUID
    staff_id: UUID
    notes: str | None = Field(default=None, max_length=2000)


class FollowUpStatusUpdate(BaseModel):
    status: FollowUpStatus
    notes: str | None = Field(default=None, max_length=2000)
    next_contact_at: datetime | None = None


class FollowUpRead(BaseModel):
    id: UUID
    tenant_id: UUID
    guest_id: UUID
    staff_id: UUID
    status: FollowUpStatus
    last_contacted_at: datetime | None = None
    next_contact_at: datetime | None = None
    notes: str
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None

    model_config = {"from_attributes": True}

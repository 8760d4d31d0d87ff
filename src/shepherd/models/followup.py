"""Follow-up assignment model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.shepherd.models.base import utc_now
from src.shepherd.models.enums import FollowUpStatus

_ACTIVE_STATUS_PREDICATE = text("status IN ('pending', 'contacted', 'in_progress')")


class FollowUpAssignment(SQLModel, table=True):
    """Links a guest to the staff principal responsible for onboarding them.

    At most one row per guest may be in a non-terminal status; the partial
    unique index enforces this at the store level.
    """

    __tablename__ = "followup_assignments"
    __table_args__ = (
        Index(
            "uq_followup_assignments_active_guest",
            "guest_id",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_PREDICATE,
            sqlite_where=_ACTIVE_STATUS_PREDICATE,
        ),
        Index("ix_followup_assignments_tenant_staff", "tenant_id", "staff_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    guest_id: UUID = Field(foreign_key="principals.id", index=True)
    staff_id: UUID = Field(foreign_key="principals.id")
    status: str = Field(default=FollowUpStatus.PENDING.value, max_length=20)
    last_contacted_at: datetime | None = Field(default=None)
    next_contact_at: datetime | None = Field(default=None)
    notes: str = Field(default="", max_length=2000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    closed_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> FollowUpStatus:
        """Get status as FollowUpStatus enum."""
        return FollowUpStatus(self.status)

    @property
    def is_active(self) -> bool:
        return not self.status_enum.is_terminal

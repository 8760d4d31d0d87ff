"""Invitation token model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from src.shepherd.models.base import utc_now
from src.shepherd.models.enums import Role


class InvitationToken(SQLModel, table=True):
    """Time- and use-bounded code admitting new principals into a tenant.

    Tokens are deactivated, never deleted. The CHECK constraints back the
    service-level compare-and-swap so ``current_uses`` can never pass ``max_uses``.
    """

    __tablename__ = "invitation_tokens"
    __table_args__ = (
        CheckConstraint("current_uses >= 0", name="ck_invitation_tokens_uses_nonnegative"),
        CheckConstraint("current_uses <= max_uses", name="ck_invitation_tokens_uses_bounded"),
        CheckConstraint("max_uses >= 1", name="ck_invitation_tokens_max_uses_positive"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    code: str = Field(max_length=128, unique=True, index=True)
    target_role: str = Field(default=Role.GUEST.value, max_length=20)
    target_group_id: UUID | None = Field(default=None)
    default_staff_id: UUID | None = Field(default=None, foreign_key="principals.id")
    expires_at: datetime
    max_uses: int = Field(default=1)
    current_uses: int = Field(default=0)
    created_by: UUID = Field(foreign_key="principals.id", index=True)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    deactivated_at: datetime | None = Field(default=None)

    @property
    def target_role_enum(self) -> Role:
        return Role(self.target_role)

    @property
    def remaining_uses(self) -> int:
        return max(self.max_uses - self.current_uses, 0)

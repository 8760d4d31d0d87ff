"""Principal model - a tenant-scoped identity carrying a role."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.shepherd.models.base import utc_now
from src.shepherd.models.enums import PrincipalStatus, Role


class Principal(SQLModel, table=True):
    """Identity scoped to exactly one tenant.

    ``tenant_id`` never changes after creation. ``explicit_grants`` only ever adds
    to the role baseline. ``assigned_staff_id`` is only set for guests and always
    points at a principal of the same tenant.
    """

    __tablename__ = "principals"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
    role: str = Field(default=Role.GUEST.value, max_length=20, index=True)
    explicit_grants: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    )
    assigned_staff_id: UUID | None = Field(
        default=None, foreign_key="principals.id", index=True
    )
    status: str = Field(default=PrincipalStatus.ACTIVE.value, max_length=20)
    full_name: str = Field(max_length=100)
    email: str | None = Field(default=None, max_length=255)
    group_id: UUID | None = Field(default=None)
    invitation_id: UUID | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> Role:
        """Get role as Role enum."""
        return Role(self.role)

    @property
    def is_active(self) -> bool:
        return self.status == PrincipalStatus.ACTIVE.value

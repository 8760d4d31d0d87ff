from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.shepherd.models import Role
from src.shepherd.schemas.principal import NewPrincipalInfo


class InvitationCreate(BaseModel):
    """Issue an invitation code.

    ``ttl_hours`` and ``max_uses`` fall back to the configured defaults.
    """

    target_role: Role = Role.GUEST
    ttl_hours: float | None = Field(default=None, gt=0)
    max_uses: int | None = Field(default=None, ge=1)
    target_group_id: UUID | None = None
    default_staff_id: UUID | None = None


class InvitationRead(BaseModel):
    id: UUID
    tenant_id: UUID
    code: str
    target_role: Role
    target_group_id: UUID | None = None
    default_staff_id: UUID | None = None
    expires_at: datetime
    max_uses: int
    current_uses: int
    created_by: UUID
    active: bool
    created_at: datetime
    deactivated_at: datetime | None = None

    model_config = {"from_attributes": True}


class InvitationPreview(BaseModel):
    """Public view of a code, shown on the accept page before redeeming."""

    tenant_name: str
    target_role: Role
    target_group_id: UUID | None = None
    expires_at: datetime
    remaining_uses: int


class RedeemRequest(NewPrincipalInfo):
    pass

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.shepherd.models import Role


class NewPrincipalInfo(BaseModel):
    """Descriptive fields supplied by whoever is being admitted."""

    full_name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = None

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower().strip() if v else v


class PrincipalCreate(NewPrincipalInfo):
    role: Role = Role.MEMBER


class PrincipalRead(BaseModel):
    id: UUID
    tenant_id: UUID
    role: Role
    status: str
    full_name: str
    email: str | None = None
    group_id: UUID | None = None
    assigned_staff_id: UUID | None = None
    explicit_grants: list[str] = Field(default_factory=list)
    invitation_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoleChangeRequest(BaseModel):
    role: Role


class GrantRequest(BaseModel):
    permission: str = Field(min_length=3, max_length=64)


class EffectivePermissions(BaseModel):
    principal_id: UUID
    role: Role
    permissions: list[str]


class AuthorizeRequest(BaseModel):
    """Ask whether the calling principal may perform ``action``.

    ``resource_tenant_id`` lets callers check a resource they already hold.
    """

    action: str = Field(min_length=1, max_length=64)
    resource_tenant_id: UUID | None = None


class AuthorizeResponse(BaseModel):
    allowed: bool
    action: str

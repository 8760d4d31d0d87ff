from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.shepherd.schemas.principal import NewPrincipalInfo, PrincipalRead


class TenantBootstrapRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    owner: NewPrincipalInfo


class TenantRead(BaseModel):
    id: UUID
    name: str
    active: bool
    created_at: datetime
    deactivated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TenantBootstrapResponse(BaseModel):
    tenant: TenantRead
    owner: PrincipalRead

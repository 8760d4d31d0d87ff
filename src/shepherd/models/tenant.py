"""Tenant model - the isolation boundary for every other record."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.shepherd.models.base import utc_now


class Tenant(SQLModel, table=True):
    """An organization. Deactivation denies all access but keeps every row."""

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100, index=True)
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    deactivated_at: datetime | None = Field(default=None)

"""Repository for Principal entity."""

from uuid import UUID

from sqlmodel import col, select

from src.shepherd.models import Principal
from src.shepherd.repositories.base import BaseRepository


class PrincipalRepository(BaseRepository[Principal]):
    """Principals are always looked up within a tenant."""

    model = Principal

    async def list_for_tenant_paginated(
        self,
        tenant_id: UUID,
        cursor: str | None,
        limit: int,
        role: str | None = None,
        status: str | None = None,
    ) -> tuple[list[Principal], str | None, bool]:
        query = select(Principal).where(Principal.tenant_id == tenant_id)
        if role is not None:
            query = query.where(Principal.role == role)
        if status is not None:
            query = query.where(Principal.status == status)
        return await self.paginate(query, cursor, limit, Principal.created_at)

    async def get_emails(self, principal_ids: list[UUID]) -> list[str]:
        """Email addresses of the given principals, skipping those without one."""
        if not principal_ids:
            return []
        result = await self.session.execute(
            select(Principal.email).where(
                col(Principal.id).in_(principal_ids),
                col(Principal.email).is_not(None),
            )
        )
        return [email for email in result.scalars().all() if email]

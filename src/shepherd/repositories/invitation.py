"""Repository for InvitationToken entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import case
from sqlmodel import col, select, update

from src.shepherd.models import InvitationToken
from src.shepherd.repositories.base import BaseRepository


class InvitationRepository(BaseRepository[InvitationToken]):
    model = InvitationToken

    async def get_by_code(self, code: str) -> InvitationToken | None:
        result = await self.session.execute(
            select(InvitationToken)
            .where(InvitationToken.code == code)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def try_consume(self, token_id: UUID, now: datetime) -> bool:
        """Atomically take one use of a token.

        Single conditional UPDATE: the row only changes while the token is active,
        unexpired and below ``max_uses``, so concurrent redeemers can never push
        ``current_uses`` past ``max_uses``. Taking the last use also deactivates.

        Returns:
            True if this caller took a use, False if the row did not qualify.
        """
        next_uses = col(InvitationToken.current_uses) + 1
        stmt = (
            update(InvitationToken)
            .where(col(InvitationToken.id) == token_id)
            .where(col(InvitationToken.active) == True)  # noqa: E712
            .where(col(InvitationToken.current_uses) < col(InvitationToken.max_uses))
            .where(col(InvitationToken.expires_at) > now)
            .values(
                current_uses=next_uses,
                active=case(
                    (next_uses >= col(InvitationToken.max_uses), False),
                    else_=InvitationToken.active,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def list_for_tenant_paginated(
        self,
        tenant_id: UUID,
        cursor: str | None,
        limit: int,
        created_by: UUID | None = None,
        active_only: bool = False,
    ) -> tuple[list[InvitationToken], str | None, bool]:
        """List a tenant's tokens, optionally only those one principal issued."""
        query = select(InvitationToken).where(InvitationToken.tenant_id == tenant_id)
        if created_by is not None:
            query = query.where(InvitationToken.created_by == created_by)
        if active_only:
            query = query.where(InvitationToken.active == True)  # noqa: E712
        return await self.paginate(query, cursor, limit, InvitationToken.created_at)

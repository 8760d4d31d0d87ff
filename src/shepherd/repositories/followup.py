"""Repository for FollowUpAssignment entity."""

from datetime import datetime
from uuid import UUID

from sqlmodel import col, select, update

from src.shepherd.models import FollowUpAssignment, FollowUpStatus
from src.shepherd.repositories.base import BaseRepository


class FollowUpRepository(BaseRepository[FollowUpAssignment]):
    model = FollowUpAssignment

    async def get_active_for_guest(self, guest_id: UUID) -> list[FollowUpAssignment]:
        """Non-terminal assignments of a guest (at most one unless corrupted)."""
        result = await self.session.execute(
            select(FollowUpAssignment).where(
                FollowUpAssignment.guest_id == guest_id,
                col(FollowUpAssignment.status).in_(FollowUpStatus.active_values()),
            )
        )
        return list(result.scalars().all())

    async def close_as_reassigned(self, assignment_ids: list[UUID], now: datetime) -> int:
        """Mark the given assignments ``reassigned`` if they are still open.

        Returns:
            Number of rows closed.
        """
        if not assignment_ids:
            return 0
        stmt = (
            update(FollowUpAssignment)
            .where(col(FollowUpAssignment.id).in_(assignment_ids))
            .where(col(FollowUpAssignment.status).in_(FollowUpStatus.active_values()))
            .values(
                status=FollowUpStatus.REASSIGNED.value,
                closed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def compare_and_set_status(
        self,
        assignment_id: UUID,
        expected_status: str,
        values: dict[str, object],
    ) -> bool:
        """Write ``values`` only if the status is still ``expected_status``.

        Returns:
            True if the row was updated, False if another writer changed it first.
        """
        stmt = (
            update(FollowUpAssignment)
            .where(col(FollowUpAssignment.id) == assignment_id)
            .where(col(FollowUpAssignment.status) == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def list_for_tenant_paginated(
        self,
        tenant_id: UUID,
        cursor: str | None,
        limit: int,
        staff_id: UUID | None = None,
        guest_id: UUID | None = None,
        active_only: bool = False,
    ) -> tuple[list[FollowUpAssignment], str | None, bool]:
        query = select(FollowUpAssignment).where(FollowUpAssignment.tenant_id == tenant_id)
        if staff_id is not None:
            query = query.where(FollowUpAssignment.staff_id == staff_id)
        if guest_id is not None:
            query = query.where(FollowUpAssignment.guest_id == guest_id)
        if active_only:
            query = query.where(
                col(FollowUpAssignment.status).in_(FollowUpStatus.active_values())
            )
        return await self.paginate(query, cursor, limit, FollowUpAssignment.created_at)

"""Follow-up assignment tracker."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.clock import Clock
from src.shepherd.core.config import get_settings
from src.shepherd.core.db import atomic
from src.shepherd.core.exceptions import (
    Conflict,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications import NotificationDispatcher, NotificationEvent
from src.shepherd.models import (
    EventType,
    FollowUpAssignment,
    FollowUpStatus,
    Principal,
    Role,
    Tenant,
)
from src.shepherd.models.base import as_naive_utc
from src.shepherd.repositories import FollowUpRepository, PrincipalRepository
from src.shepherd.services.permissions import authorize, require

logger = get_logger(__name__)


class FollowUpService:
    """Tracks which staff member is responsible for each guest.

    A guest has at most one open (non-terminal) assignment. Assigning again
    closes the open one as ``reassigned`` in the same transaction.
    """

    def __init__(
        self,
        followup_repo: FollowUpRepository,
        principal_repo: PrincipalRepository,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        clock: Clock,
    ):
        self.followup_repo = followup_repo
        self.principal_repo = principal_repo
        self.session = session
        self.dispatcher = dispatcher
        self.clock = clock

    async def assign(
        self,
        actor: Principal,
        tenant: Tenant,
        guest_id: UUID,
        staff_id: UUID,
        notes: str | None = None,
        timeout: float | None = None,
    ) -> FollowUpAssignment:
        """Make ``staff_id`` responsible for ``guest_id``.

        Raises:
            Unauthorized: Missing ``followup:assign`` or guest in another tenant.
            NotFound: Unknown guest, or staff not in this tenant.
            InvalidRequest: Guest is not a guest, or staff is not active staff.
            Conflict: A concurrent assign for the same guest won.
            Unavailable: The store did not answer within ``timeout``.
        """
        now = self.clock.now()
        async with atomic(self.session, "followup.assign", timeout):
            require(actor, tenant, "followup:assign")
            guest = await self.principal_repo.get_by_id(guest_id)
            if guest is None:
                raise NotFound("Guest not found")
            require(actor, tenant, "followup:assign", guest)
            if guest.role_enum != Role.GUEST:
                raise InvalidRequest("Only guests can be assigned for follow-up")

            staff = await self.principal_repo.get_in_tenant(staff_id, guest.tenant_id)
            if staff is None:
                raise NotFound("Staff member not found")
            if not staff.is_active or staff.role_enum < Role.STAFF:
                raise InvalidRequest("Follow-ups can only be assigned to active staff")

            previous = await self.followup_repo.get_active_for_guest(guest.id)
            closed = await self.followup_repo.close_as_reassigned(
                [a.id for a in previous], now
            )
            if closed != len(previous):
                raise Conflict("Follow-up changed while reassigning, please retry")

            assignment = FollowUpAssignment(
                tenant_id=guest.tenant_id,
                guest_id=guest.id,
                staff_id=staff.id,
                status=FollowUpStatus.PENDING.value,
                notes=notes or "",
                created_at=now,
                updated_at=now,
            )
            self.followup_repo.add(assignment)
            guest.assigned_staff_id = staff.id
            guest.updated_at = now
            self.principal_repo.add(guest)
            await self.session.flush()

            staff_emails = await self.principal_repo.get_emails([staff.id])
            previous_emails = {
                a.staff_id: await self.principal_repo.get_emails([a.staff_id]) for a in previous
            }

        logger.info(
            "Follow-up assigned",
            assignment_id=str(assignment.id),
            guest_id=str(guest.id),
            staff_id=str(staff.id),
            reassigned=len(previous),
        )
        self.dispatcher.emit(
            NotificationEvent.for_transition(
                EventType.FOLLOWUP_ASSIGNED,
                assignment.id,
                assignment.tenant_id,
                recipient_ids=[staff.id],
                recipient_emails=staff_emails,
                payload={
                    "tenant_name": tenant.name,
                    "assignment_id": str(assignment.id),
                    "guest_id": str(guest.id),
                    "message": f"Please follow up with {guest.full_name}.",
                },
            )
        )
        if get_settings().notify_previous_staff_on_reassign:
            self.dispatcher.emit_many(
                NotificationEvent.for_transition(
                    EventType.FOLLOWUP_REASSIGNED,
                    old.id,
                    old.tenant_id,
                    recipient_ids=[old.staff_id],
                    recipient_emails=previous_emails.get(old.staff_id, []),
                    payload={
                        "tenant_name": tenant.name,
                        "assignment_id": str(old.id),
                        "replacement_id": str(assignment.id),
                        "guest_id": str(guest.id),
                        "message": f"{guest.full_name} has been reassigned.",
                    },
                )
                for old in previous
            )
        return assignment

    async def update_status(
        self,
        actor: Principal,
        tenant: Tenant,
        assignment_id: UUID,
        new_status: FollowUpStatus,
        notes: str | None = None,
        next_contact_at: datetime | None = None,
        timeout: float | None = None,
    ) -> FollowUpAssignment:
        """Record progress on an open assignment.

        The assigned staff member (with ``followup:update``) or anyone with
        ``followup:override`` may write any forward status. ``reassigned`` is
        only set by ``assign``; terminal assignments never change.

        Raises:
            Unauthorized, NotFound, InvalidTransition,
            Conflict: The status changed since it was read.
            Unavailable: The store did not answer within ``timeout``.
        """
        now = self.clock.now()
        async with atomic(self.session, "followup.update_status", timeout):
            assignment = await self._load_for_update(actor, tenant, assignment_id)
            if new_status == FollowUpStatus.REASSIGNED:
                raise InvalidTransition("Use assign to reassign a follow-up")
            old_status = assignment.status_enum
            if old_status.is_terminal:
                raise InvalidTransition(
                    f"Follow-up is already {old_status.value}", status=old_status.value
                )

            values: dict[str, object] = {"status": new_status.value, "updated_at": now}
            if notes is not None:
                values["notes"] = notes
            if next_contact_at is not None:
                values["next_contact_at"] = as_naive_utc(next_contact_at)
            if old_status == FollowUpStatus.PENDING and new_status != FollowUpStatus.PENDING:
                values["last_contacted_at"] = now
            if new_status == FollowUpStatus.COMPLETED:
                values["closed_at"] = now

            if not await self.followup_repo.compare_and_set_status(
                assignment.id, old_status.value, values
            ):
                raise Conflict("Follow-up changed concurrently, please retry")
            assignment = await self.followup_repo.refresh(assignment)
            staff_emails = await self.principal_repo.get_emails([assignment.staff_id])

        if old_status == new_status:
            return assignment

        logger.info(
            "Follow-up status changed",
            assignment_id=str(assignment.id),
            old_status=old_status.value,
            new_status=new_status.value,
            actor_id=str(actor.id),
        )
        self.dispatcher.emit(
            NotificationEvent.for_transition(
                EventType.FOLLOWUP_STATUS_CHANGED,
                assignment.id,
                assignment.tenant_id,
                discriminator=f"{old_status.value}:{new_status.value}:{now.isoformat()}",
                recipient_ids=[assignment.staff_id],
                recipient_emails=staff_emails if actor.id != assignment.staff_id else [],
                payload={
                    "tenant_name": tenant.name,
                    "assignment_id": str(assignment.id),
                    "guest_id": str(assignment.guest_id),
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                    "message": f"Follow-up moved to {new_status.value}.",
                },
            )
        )
        return assignment

    async def get_assignment(
        self, actor: Principal, tenant: Tenant, assignment_id: UUID
    ) -> FollowUpAssignment:
        async with atomic(self.session, "followup.get"):
            require(actor, tenant, "followup:read")
            assignment = await self.followup_repo.get_by_id(assignment_id)
            if assignment is None:
                raise NotFound("Follow-up not found")
            if assignment.staff_id != actor.id:
                require(actor, tenant, "followup:read_all", assignment)
            else:
                require(actor, tenant, "followup:read", assignment)
        return assignment

    async def list_assignments(
        self,
        actor: Principal,
        tenant: Tenant,
        guest_id: UUID | None = None,
        active_only: bool = False,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[FollowUpAssignment], str | None, bool]:
        """List follow-ups: the whole tenant with ``followup:read_all``, else your own."""
        async with atomic(self.session, "followup.list"):
            require(actor, tenant, "followup:read")
            staff_id = None if authorize(actor, tenant, "followup:read_all") else actor.id
            return await self.followup_repo.list_for_tenant_paginated(
                actor.tenant_id,
                cursor,
                limit,
                staff_id=staff_id,
                guest_id=guest_id,
                active_only=active_only,
            )

    async def _load_for_update(
        self, actor: Principal, tenant: Tenant, assignment_id: UUID
    ) -> FollowUpAssignment:
        if not (
            authorize(actor, tenant, "followup:update")
            or authorize(actor, tenant, "followup:override")
        ):
            raise Unauthorized("Not authorized: followup:update", action="followup:update")
        assignment = await self.followup_repo.get_by_id(assignment_id)
        if assignment is None:
            raise NotFound("Follow-up not found")
        if authorize(actor, tenant, "followup:override", assignment):
            return assignment
        if assignment.staff_id == actor.id and authorize(
            actor, tenant, "followup:update", assignment
        ):
            return assignment
        raise Unauthorized("Only the assigned staff member can update this follow-up")

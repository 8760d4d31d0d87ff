"""Invitation lifecycle: issue, redeem, deactivate, list and preview codes."""

import secrets
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.clock import Clock
from src.shepherd.core.config import get_settings
from src.shepherd.core.db import atomic
from src.shepherd.core.exceptions import (
    Conflict,
    InvalidRequest,
    NotFound,
    TokenExhausted,
    TokenExpired,
    TokenInactive,
    TokenNotFound,
    Unauthorized,
)
from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications import NotificationDispatcher, NotificationEvent
from src.shepherd.models import (
    EventType,
    FollowUpAssignment,
    InvitationToken,
    Principal,
    Role,
    Tenant,
)
from src.shepherd.repositories import (
    FollowUpRepository,
    InvitationRepository,
    PrincipalRepository,
    TenantRepository,
)
from src.shepherd.schemas.invitation import InvitationPreview
from src.shepherd.schemas.principal import NewPrincipalInfo
from src.shepherd.services.permissions import authorize, require, require_outranks

logger = get_logger(__name__)


def ttl_from_hours(hours: float) -> timedelta:
    """Turn a requested lifetime in hours into a TTL within the configured bounds.

    Raises:
        InvalidRequest: Not positive, or longer than ``invite_max_ttl_hours``.
    """
    max_hours = get_settings().invite_max_ttl_hours
    if not 0 < hours <= max_hours:
        raise InvalidRequest(f"ttl must be positive and at most {max_hours} hours")
    return timedelta(hours=hours)


def check_redeemable(token: InvitationToken, tenant: Tenant | None, now: datetime) -> None:
    """Raise the terminal error that applies to ``token``, if any.

    Checked in a fixed order so every caller sees the same kind for the same
    state: expired, then exhausted, then inactive.
    """
    if now >= token.expires_at:
        raise TokenExpired()
    if token.current_uses >= token.max_uses:
        raise TokenExhausted()
    if not token.active or tenant is None or not tenant.active:
        raise TokenInactive()


class InvitationService:
    def __init__(
        self,
        invitation_repo: InvitationRepository,
        principal_repo: PrincipalRepository,
        tenant_repo: TenantRepository,
        followup_repo: FollowUpRepository,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        clock: Clock,
    ):
        self.invitation_repo = invitation_repo
        self.principal_repo = principal_repo
        self.tenant_repo = tenant_repo
        self.followup_repo = followup_repo
        self.session = session
        self.dispatcher = dispatcher
        self.clock = clock

    async def issue(
        self,
        issuer: Principal,
        tenant: Tenant,
        target_role: Role,
        ttl: timedelta | None = None,
        max_uses: int | None = None,
        target_group_id: UUID | None = None,
        default_staff_id: UUID | None = None,
        timeout: float | None = None,
    ) -> InvitationToken:
        """Issue a new invitation code in the issuer's tenant.

        Nobody can invite into a role at or above their own. ``ttl`` and
        ``max_uses`` default to the configured values and are bounded by the
        configured maximums. ``timeout`` overrides the store deadline.

        Raises:
            Unauthorized: Missing ``invite:create`` or target role too high.
            InvalidRequest: Bounds violated or unusable default staff.
            Unavailable: The store did not answer within the deadline.
        """
        settings = get_settings()
        if ttl is None:
            ttl = timedelta(hours=settings.invite_default_ttl_hours)
        if max_uses is None:
            max_uses = settings.invite_default_max_uses

        async with atomic(self.session, "invitation.issue", timeout):
            require(issuer, tenant, "invite:create")
            require_outranks(issuer, target_role)

            if ttl <= timedelta(0) or ttl > timedelta(hours=settings.invite_max_ttl_hours):
                raise InvalidRequest(
                    f"ttl must be positive and at most {settings.invite_max_ttl_hours} hours"
                )
            if not 1 <= max_uses <= settings.invite_max_uses:
                raise InvalidRequest(f"max_uses must be between 1 and {settings.invite_max_uses}")
            if default_staff_id is not None:
                await self._validate_default_staff(issuer, target_role, default_staff_id)

            now = self.clock.now()
            token = InvitationToken(
                tenant_id=issuer.tenant_id,
                code=secrets.token_urlsafe(settings.invite_code_bytes),
                target_role=target_role.value,
                target_group_id=target_group_id,
                default_staff_id=default_staff_id,
                expires_at=now + ttl,
                max_uses=max_uses,
                current_uses=0,
                created_by=issuer.id,
                active=True,
                created_at=now,
            )
            self.invitation_repo.add(token)

        logger.info(
            "Invitation issued",
            token_id=str(token.id),
            target_role=target_role.value,
            max_uses=max_uses,
            issuer_id=str(issuer.id),
        )
        return token

    async def _validate_default_staff(
        self, issuer: Principal, target_role: Role, default_staff_id: UUID
    ) -> None:
        if target_role != Role.GUEST:
            raise InvalidRequest("default_staff_id is only allowed for guest invitations")
        staff = await self.principal_repo.get_in_tenant(default_staff_id, issuer.tenant_id)
        if staff is None or not staff.is_active or staff.role_enum < Role.STAFF:
            raise InvalidRequest("default_staff_id must be an active staff member of this tenant")

    async def redeem(
        self, code: str, info: NewPrincipalInfo, timeout: float | None = None
    ) -> Principal:
        """Admit a new principal with an invitation code.

        One use is taken with a conditional UPDATE, so concurrent redeemers of
        the last use get exactly one winner; losers see the token's terminal
        state. The token counter, the new principal and its follow-up
        assignment commit together.

        Raises:
            TokenNotFound, TokenExpired, TokenExhausted, TokenInactive,
            Conflict (lost a race that no terminal state explains),
            Unavailable (store deadline passed; nothing is consumed).
        """
        now = self.clock.now()
        assignment: FollowUpAssignment | None = None
        async with atomic(self.session, "invitation.redeem", timeout):
            token = await self.invitation_repo.get_by_code(code)
            if token is None:
                raise TokenNotFound()
            tenant = await self.tenant_repo.get_by_id(token.tenant_id)
            check_redeemable(token, tenant, now)
            if tenant is None:
                raise TokenInactive()

            if not await self.invitation_repo.try_consume(token.id, now):
                token = await self.invitation_repo.refresh(token)
                check_redeemable(token, tenant, now)
                raise Conflict("Invitation changed while redeeming, please retry")

            target_role = token.target_role_enum
            principal = Principal(
                tenant_id=token.tenant_id,
                role=target_role.value,
                full_name=info.full_name,
                email=info.email,
                group_id=token.target_group_id,
                invitation_id=token.id,
                created_at=now,
                updated_at=now,
            )
            self.principal_repo.add(principal)
            await self.session.flush()

            if target_role == Role.GUEST and token.default_staff_id is not None:
                staff = await self.principal_repo.get_in_tenant(
                    token.default_staff_id, token.tenant_id
                )
                if staff is not None and staff.is_active and staff.role_enum >= Role.STAFF:
                    principal.assigned_staff_id = staff.id
                    assignment = FollowUpAssignment(
                        tenant_id=token.tenant_id,
                        guest_id=principal.id,
                        staff_id=staff.id,
                        created_at=now,
                        updated_at=now,
                    )
                    self.followup_repo.add(assignment)
                else:
                    logger.warning(
                        "Default staff no longer eligible, guest admitted unassigned",
                        token_id=str(token.id),
                        staff_id=str(token.default_staff_id),
                    )

            recipient_ids = [token.created_by]
            recipient_emails = await self.principal_repo.get_emails(recipient_ids)
            staff_emails = (
                await self.principal_repo.get_emails([assignment.staff_id]) if assignment else []
            )

        logger.info(
            "Invitation redeemed",
            token_id=str(token.id),
            principal_id=str(principal.id),
            role=principal.role,
            tenant_id=str(principal.tenant_id),
        )
        self.dispatcher.emit(
            NotificationEvent.for_transition(
                EventType.PRINCIPAL_ADMITTED,
                principal.id,
                principal.tenant_id,
                recipient_ids=recipient_ids,
                recipient_emails=recipient_emails,
                payload={
                    "tenant_name": tenant.name,
                    "principal_id": str(principal.id),
                    "token_id": str(token.id),
                    "role": principal.role,
                    "message": f"{principal.full_name} joined as {principal.role}.",
                },
            )
        )
        if assignment is not None:
            self.dispatcher.emit(
                NotificationEvent.for_transition(
                    EventType.FOLLOWUP_ASSIGNED,
                    assignment.id,
                    assignment.tenant_id,
                    recipient_ids=[assignment.staff_id],
                    recipient_emails=staff_emails,
                    payload={
                        "tenant_name": tenant.name,
                        "assignment_id": str(assignment.id),
                        "guest_id": str(principal.id),
                        "message": f"Please follow up with {principal.full_name}.",
                    },
                )
            )
        return principal

    async def preview(self, code: str) -> InvitationPreview:
        """Describe a code for the accept page without consuming a use."""
        now = self.clock.now()
        async with atomic(self.session, "invitation.preview"):
            token = await self.invitation_repo.get_by_code(code)
            if token is None:
                raise TokenNotFound()
            tenant = await self.tenant_repo.get_by_id(token.tenant_id)
            check_redeemable(token, tenant, now)
            if tenant is None:
                raise TokenInactive()

        return InvitationPreview(
            tenant_name=tenant.name,
            target_role=token.target_role_enum,
            target_group_id=token.target_group_id,
            expires_at=token.expires_at,
            remaining_uses=token.remaining_uses,
        )

    async def deactivate(
        self, actor: Principal, tenant: Tenant, token_id: UUID
    ) -> InvitationToken:
        """Stop a code from admitting anyone else. Idempotent.

        The issuer may deactivate its own codes; anyone else needs ``invite:manage``.
        """
        async with atomic(self.session, "invitation.deactivate"):
            if not (
                authorize(actor, tenant, "invite:create")
                or authorize(actor, tenant, "invite:manage")
            ):
                raise Unauthorized("Not authorized: invite:create", action="invite:create")
            token = await self.invitation_repo.get_by_id(token_id)
            if token is None:
                raise NotFound("Invitation not found")
            action = "invite:create" if token.created_by == actor.id else "invite:manage"
            require(actor, tenant, action, token)

            token = await self.invitation_repo.refresh(token)
            if token.active:
                token.active = False
                token.deactivated_at = self.clock.now()
                self.invitation_repo.add(token)
                logger.info(
                    "Invitation deactivated", token_id=str(token.id), actor_id=str(actor.id)
                )
        return token

    async def list_tokens(
        self,
        actor: Principal,
        tenant: Tenant,
        active_only: bool = False,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[InvitationToken], str | None, bool]:
        """List codes: everything in the tenant with ``invite:manage``, else your own."""
        async with atomic(self.session, "invitation.list"):
            created_by: UUID | None
            if authorize(actor, tenant, "invite:manage"):
                created_by = None
            elif authorize(actor, tenant, "invite:create"):
                created_by = actor.id
            else:
                raise Unauthorized("Not authorized: invite:create", action="invite:create")
            return await self.invitation_repo.list_for_tenant_paginated(
                actor.tenant_id,
                cursor,
                limit,
                created_by=created_by,
                active_only=active_only,
            )

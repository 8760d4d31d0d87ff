"""Principal store service: creation, promotion, grants and suspension."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.clock import Clock
from src.shepherd.core.db import atomic
from src.shepherd.core.exceptions import InvalidRequest, NotFound, Unauthorized
from src.shepherd.core.logging import get_logger
from src.shepherd.core.notifications import NotificationDispatcher, NotificationEvent
from src.shepherd.models import EventType, Principal, PrincipalStatus, Role, Tenant
from src.shepherd.repositories import PrincipalRepository
from src.shepherd.schemas.principal import NewPrincipalInfo
from src.shepherd.services.permissions import (
    PERMISSION_CATALOG,
    require,
    require_outranks,
    resolve,
)

logger = get_logger(__name__)


class PrincipalService:
    """Mutations on principals of the actor's own tenant.

    Every mutation of another principal requires the target's current role (and
    any new role) to be strictly below the actor's.
    """

    def __init__(
        self,
        principal_repo: PrincipalRepository,
        session: AsyncSession,
        dispatcher: NotificationDispatcher,
        clock: Clock,
    ):
        self.principal_repo = principal_repo
        self.session = session
        self.dispatcher = dispatcher
        self.clock = clock

    async def create_principal(
        self,
        actor: Principal,
        tenant: Tenant,
        info: NewPrincipalInfo,
        role: Role,
    ) -> Principal:
        now = self.clock.now()
        async with atomic(self.session, "principal.create"):
            require(actor, tenant, "principals:create")
            require_outranks(actor, role)
            principal = Principal(
                tenant_id=actor.tenant_id,
                role=role.value,
                full_name=info.full_name,
                email=info.email,
                created_at=now,
                updated_at=now,
            )
            self.principal_repo.add(principal)

        logger.info(
            "Principal created",
            principal_id=str(principal.id),
            role=role.value,
            actor_id=str(actor.id),
        )
        return principal

    async def get_principal(
        self, actor: Principal, tenant: Tenant, principal_id: UUID
    ) -> Principal:
        """Read one principal. Reading yourself needs only ``profile:read``."""
        async with atomic(self.session, "principal.get"):
            return await self._load_readable(actor, tenant, principal_id)

    async def list_principals(
        self,
        actor: Principal,
        tenant: Tenant,
        role: Role | None = None,
        status: PrincipalStatus | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Principal], str | None, bool]:
        async with atomic(self.session, "principal.list"):
            require(actor, tenant, "principals:read")
            return await self.principal_repo.list_for_tenant_paginated(
                actor.tenant_id,
                cursor,
                limit,
                role=role.value if role else None,
                status=status.value if status else None,
            )

    async def effective_permissions(
        self, actor: Principal, tenant: Tenant, principal_id: UUID
    ) -> tuple[Principal, frozenset[str]]:
        async with atomic(self.session, "principal.permissions"):
            principal = await self._load_readable(actor, tenant, principal_id)
        return principal, resolve(principal)

    async def change_role(
        self,
        actor: Principal,
        tenant: Tenant,
        principal_id: UUID,
        new_role: Role,
    ) -> Principal:
        """Promote or demote a principal.

        Leaving ``guest`` clears the follow-up owner, which only guests carry.
        """
        now = self.clock.now()
        async with atomic(self.session, "principal.change_role"):
            target = await self._load_managed(actor, tenant, principal_id, "principals:promote")
            require_outranks(actor, target.role_enum, new_role)
            old_role = target.role_enum
            if old_role != new_role:
                target.role = new_role.value
                if new_role != Role.GUEST:
                    target.assigned_staff_id = None
                target.updated_at = now
                self.principal_repo.add(target)

        if old_role == new_role:
            return target

        logger.info(
            "Principal role changed",
            principal_id=str(target.id),
            old_role=old_role.value,
            new_role=new_role.value,
            actor_id=str(actor.id),
        )
        self.dispatcher.emit(
            NotificationEvent.for_transition(
                EventType.PRINCIPAL_ROLE_CHANGED,
                target.id,
                target.tenant_id,
                discriminator=f"{old_role.value}:{new_role.value}:{now.isoformat()}",
                recipient_ids=[target.id],
                recipient_emails=[target.email] if target.email else [],
                payload={
                    "tenant_name": tenant.name,
                    "old_role": old_role.value,
                    "new_role": new_role.value,
                    "message": f"Your role is now {new_role.value}.",
                },
            )
        )
        return target

    async def grant_permission(
        self,
        actor: Principal,
        tenant: Tenant,
        principal_id: UUID,
        permission: str,
    ) -> Principal:
        """Add an explicit grant. Actors can only hand out what they hold."""
        if permission not in PERMISSION_CATALOG:
            raise InvalidRequest(f"Unknown permission '{permission}'", permission=permission)

        async with atomic(self.session, "principal.grant"):
            target = await self._load_managed(actor, tenant, principal_id, "grants:manage")
            require_outranks(actor, target.role_enum)
            if permission not in resolve(actor):
                raise Unauthorized(
                    f"Cannot grant '{permission}' without holding it", permission=permission
                )
            grants = list(target.explicit_grants or [])
            if permission not in grants:
                target.explicit_grants = [*grants, permission]
                target.updated_at = self.clock.now()
                self.principal_repo.add(target)
                logger.info(
                    "Permission granted",
                    principal_id=str(target.id),
                    permission=permission,
                    actor_id=str(actor.id),
                )
        return target

    async def revoke_permission(
        self,
        actor: Principal,
        tenant: Tenant,
        principal_id: UUID,
        permission: str,
    ) -> Principal:
        """Remove an explicit grant. Baseline permissions cannot be revoked."""
        async with atomic(self.session, "principal.revoke"):
            target = await self._load_managed(actor, tenant, principal_id, "grants:manage")
            require_outranks(actor, target.role_enum)
            grants = list(target.explicit_grants or [])
            if permission in grants:
                target.explicit_grants = [g for g in grants if g != permission]
                target.updated_at = self.clock.now()
                self.principal_repo.add(target)
                logger.info(
                    "Permission revoked",
                    principal_id=str(target.id),
                    permission=permission,
                    actor_id=str(actor.id),
                )
        return target

    async def suspend(self, actor: Principal, tenant: Tenant, principal_id: UUID) -> Principal:
        return await self._set_status(actor, tenant, principal_id, PrincipalStatus.SUSPENDED)

    async def reactivate(
        self, actor: Principal, tenant: Tenant, principal_id: UUID
    ) -> Principal:
        return await self._set_status(actor, tenant, principal_id, PrincipalStatus.ACTIVE)

    async def _set_status(
        self,
        actor: Principal,
        tenant: Tenant,
        principal_id: UUID,
        status: PrincipalStatus,
    ) -> Principal:
        async with atomic(self.session, f"principal.{status.value}"):
            target = await self._load_managed(actor, tenant, principal_id, "principals:suspend")
            require_outranks(actor, target.role_enum)
            if target.status != status.value:
                target.status = status.value
                target.updated_at = self.clock.now()
                self.principal_repo.add(target)
                logger.info(
                    "Principal status changed",
                    principal_id=str(target.id),
                    status=status.value,
                    actor_id=str(actor.id),
                )
        return target

    async def _load_managed(
        self,
        actor: Principal,
        tenant: Tenant,
        principal_id: UUID,
        action: str,
    ) -> Principal:
        require(actor, tenant, action)
        target = await self.principal_repo.get_by_id(principal_id)
        if target is None:
            raise NotFound("Principal not found")
        require(actor, tenant, action, target)
        return target

    async def _load_readable(
        self, actor: Principal, tenant: Tenant, principal_id: UUID
    ) -> Principal:
        if principal_id == actor.id:
            require(actor, tenant, "profile:read")
            return await self.principal_repo.refresh(actor)
        return await self._load_managed(actor, tenant, principal_id, "principals:read")


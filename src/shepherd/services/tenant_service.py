"""Tenant directory service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.clock import Clock
from src.shepherd.core.db import atomic
from src.shepherd.core.exceptions import NotFound
from src.shepherd.core.logging import get_logger
from src.shepherd.models import Principal, Role, Tenant
from src.shepherd.repositories import PrincipalRepository, TenantRepository
from src.shepherd.schemas.principal import NewPrincipalInfo
from src.shepherd.services.permissions import ResourceRef, require

logger = get_logger(__name__)


class TenantService:
    """Creates, reads and deactivates tenants."""

    def __init__(
        self,
        tenant_repo: TenantRepository,
        principal_repo: PrincipalRepository,
        session: AsyncSession,
        clock: Clock,
    ):
        self.tenant_repo = tenant_repo
        self.principal_repo = principal_repo
        self.session = session
        self.clock = clock

    async def bootstrap_tenant(
        self, name: str, owner_info: NewPrincipalInfo
    ) -> tuple[Tenant, Principal]:
        """Create a tenant together with its first principal, an owner.

        Both rows commit together or not at all. Ownership is always explicit;
        nothing is inferred from being the first principal of a tenant.
        """
        now = self.clock.now()
        async with atomic(self.session, "tenant.bootstrap"):
            tenant = Tenant(name=name.strip(), created_at=now)
            self.tenant_repo.add(tenant)
            await self.session.flush()

            owner = Principal(
                tenant_id=tenant.id,
                role=Role.OWNER.value,
                full_name=owner_info.full_name,
                email=owner_info.email,
                created_at=now,
                updated_at=now,
            )
            self.principal_repo.add(owner)

        logger.info("Tenant bootstrapped", tenant_id=str(tenant.id), owner_id=str(owner.id))
        return tenant, owner

    async def get_tenant(self, tenant_id: UUID) -> Tenant:
        async with atomic(self.session, "tenant.get"):
            tenant = await self.tenant_repo.get_by_id(tenant_id)
        if tenant is None:
            raise NotFound("Tenant not found")
        return tenant

    async def deactivate_tenant(self, actor: Principal, tenant: Tenant) -> Tenant:
        """Deactivate a tenant. Afterwards every authorization in it is denied.

        Rows are kept; nothing is deleted. A second call is denied like any other
        action in an inactive tenant.
        """
        async with atomic(self.session, "tenant.deactivate"):
            require(actor, tenant, "tenant:manage", ResourceRef(tenant.id))
            current = await self.tenant_repo.refresh(tenant)
            if current.active:
                current.active = False
                current.deactivated_at = self.clock.now()
                self.tenant_repo.add(current)

        logger.info("Tenant deactivated", tenant_id=str(current.id), actor_id=str(actor.id))
        return current


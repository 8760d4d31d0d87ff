"""Test helper functions for common data creation patterns."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.shepherd.core.clock import Clock
from src.shepherd.core.notifications import NotificationDispatcher
from src.shepherd.models import Principal, Role, Tenant
from src.shepherd.repositories import (
    FollowUpRepository,
    InvitationRepository,
    PrincipalRepository,
    TenantRepository,
)
from src.shepherd.services import (
    FollowUpService,
    InvitationService,
    PrincipalService,
    TenantService,
)
from tests.factories import PrincipalFactory, TenantFactory


@dataclass
class Services:
    """Every service wired to one session, the way the API dependencies do it."""

    session: AsyncSession
    tenants: TenantService
    principals: PrincipalService
    invitations: InvitationService
    followups: FollowUpService


def build_services(
    session: AsyncSession, dispatcher: NotificationDispatcher, clock: Clock
) -> Services:
    tenant_repo = TenantRepository(session)
    principal_repo = PrincipalRepository(session)
    invitation_repo = InvitationRepository(session)
    followup_repo = FollowUpRepository(session)
    return Services(
        session=session,
        tenants=TenantService(tenant_repo, principal_repo, session, clock),
        principals=PrincipalService(principal_repo, session, dispatcher, clock),
        invitations=InvitationService(
            invitation_repo,
            principal_repo,
            tenant_repo,
            followup_repo,
            session,
            dispatcher,
            clock,
        ),
        followups=FollowUpService(followup_repo, principal_repo, session, dispatcher, clock),
    )


async def create_tenant(session: AsyncSession, **tenant_kwargs) -> Tenant:
    """Create and commit a tenant.

    Args:
        session: Database session
        **tenant_kwargs: Args passed to TenantFactory
    """
    tenant = TenantFactory.build(**tenant_kwargs)
    session.add(tenant)
    await session.commit()
    return tenant


async def create_principal(
    session: AsyncSession,
    tenant: Tenant,
    role: Role = Role.MEMBER,
    **principal_kwargs,
) -> Principal:
    """Create and commit a principal in ``tenant``.

    Args:
        session: Database session
        tenant: Tenant the principal belongs to
        role: Role of the principal (default: MEMBER)
        **principal_kwargs: Additional args passed to PrincipalFactory
    """
    principal = PrincipalFactory.with_role(role, tenant_id=tenant.id, **principal_kwargs)
    session.add(principal)
    await session.commit()
    return principal


@dataclass
class Congregation:
    """One tenant populated with a principal of every role."""

    tenant: Tenant
    owner: Principal
    admin: Principal
    staff: Principal
    other_staff: Principal
    member: Principal
    guest: Principal


async def create_congregation(session: AsyncSession, **tenant_kwargs) -> Congregation:
    tenant = await create_tenant(session, **tenant_kwargs)
    return Congregation(
        tenant=tenant,
        owner=await create_principal(session, tenant, Role.OWNER, full_name="Olive Owner"),
        admin=await create_principal(session, tenant, Role.ADMIN, full_name="Adam Admin"),
        staff=await create_principal(session, tenant, Role.STAFF, full_name="Sara Staff"),
        other_staff=await create_principal(session, tenant, Role.STAFF, full_name="Sam Staff"),
        member=await create_principal(session, tenant, Role.MEMBER, full_name="Mia Member"),
        guest=await create_principal(session, tenant, Role.GUEST, full_name="Gil Guest"),
    )

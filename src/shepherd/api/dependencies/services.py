"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.shepherd.api.dependencies.db import DBSession
from src.shepherd.api.dependencies.repositories import (
    FollowUpRepo,
    InvitationRepo,
    PrincipalRepo,
    TenantRepo,
)
from src.shepherd.api.dependencies.runtime import AppClock, Dispatcher
from src.shepherd.services import (
    FollowUpService,
    InvitationService,
    PrincipalService,
    TenantService,
)


def get_tenant_service(
    tenant_repo: TenantRepo,
    principal_repo: PrincipalRepo,
    session: DBSession,
    clock: AppClock,
) -> TenantService:
    return TenantService(tenant_repo, principal_repo, session, clock)


def get_principal_service(
    principal_repo: PrincipalRepo,
    session: DBSession,
    dispatcher: Dispatcher,
    clock: AppClock,
) -> PrincipalService:
    return PrincipalService(principal_repo, session, dispatcher, clock)


def get_invitation_service(
    invitation_repo: InvitationRepo,
    principal_repo: PrincipalRepo,
    tenant_repo: TenantRepo,
    followup_repo: FollowUpRepo,
    session: DBSession,
    dispatcher: Dispatcher,
    clock: AppClock,
) -> InvitationService:
    return InvitationService(
        invitation_repo,
        principal_repo,
        tenant_repo,
        followup_repo,
        session,
        dispatcher,
        clock,
    )


def get_followup_service(
    followup_repo: FollowUpRepo,
    principal_repo: PrincipalRepo,
    session: DBSession,
    dispatcher: Dispatcher,
    clock: AppClock,
) -> FollowUpService:
    return FollowUpService(followup_repo, principal_repo, session, dispatcher, clock)


TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]
PrincipalServiceDep = Annotated[PrincipalService, Depends(get_principal_service)]
InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]
FollowUpServiceDep = Annotated[FollowUpService, Depends(get_followup_service)]

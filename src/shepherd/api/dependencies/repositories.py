"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.shepherd.api.dependencies.db import DBSession
from src.shepherd.repositories import (
    FollowUpRepository,
    InvitationRepository,
    PrincipalRepository,
    TenantRepository,
)


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_principal_repository(session: DBSession) -> PrincipalRepository:
    return PrincipalRepository(session)


def get_invitation_repository(session: DBSession) -> InvitationRepository:
    return InvitationRepository(session)


def get_followup_repository(session: DBSession) -> FollowUpRepository:
    return FollowUpRepository(session)


TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
PrincipalRepo = Annotated[PrincipalRepository, Depends(get_principal_repository)]
InvitationRepo = Annotated[InvitationRepository, Depends(get_invitation_repository)]
FollowUpRepo = Annotated[FollowUpRepository, Depends(get_followup_repository)]

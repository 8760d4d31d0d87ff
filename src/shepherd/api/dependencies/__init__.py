"""FastAPI dependency injection definitions.

Re-exports every dependency so routers import from one place.
"""

from src.shepherd.api.dependencies.auth import (
    CurrentPrincipal,
    CurrentTenant,
    get_current_principal,
    get_current_tenant,
)
from src.shepherd.api.dependencies.db import DBSession, get_db_session
from src.shepherd.api.dependencies.repositories import (
    FollowUpRepo,
    InvitationRepo,
    PrincipalRepo,
    TenantRepo,
)
from src.shepherd.api.dependencies.runtime import AppClock, Dispatcher, get_clock, get_dispatcher
from src.shepherd.api.dependencies.services import (
    FollowUpServiceDep,
    InvitationServiceDep,
    PrincipalServiceDep,
    TenantServiceDep,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Caller
    "CurrentPrincipal",
    "CurrentTenant",
    "get_current_principal",
    "get_current_tenant",
    # Runtime
    "AppClock",
    "Dispatcher",
    "get_clock",
    "get_dispatcher",
    # Repositories
    "FollowUpRepo",
    "InvitationRepo",
    "PrincipalRepo",
    "TenantRepo",
    # Services
    "FollowUpServiceDep",
    "InvitationServiceDep",
    "PrincipalServiceDep",
    "TenantServiceDep",
]

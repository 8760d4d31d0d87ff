"""Caller identity dependencies.

Authentication happens upstream. The authenticating proxy forwards the caller as
``X-Tenant-ID`` and ``X-Principal-ID``; this layer only resolves those ids to
rows. A missing, malformed or unknown id is a 401. Everything past that (inactive
tenant, suspended principal, missing permission) is the resolver's 403.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.shepherd.api.dependencies.repositories import PrincipalRepo, TenantRepo
from src.shepherd.core.logging import bind_principal_context
from src.shepherd.models import Principal, Tenant


def _parse_id(value: str | None, header: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{header} header is required",
        )
    try:
        return UUID(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {header} header",
        ) from e


async def get_current_tenant(
    tenant_repo: TenantRepo,
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> Tenant:
    tenant_id = _parse_id(x_tenant_id, "X-Tenant-ID")
    tenant = await tenant_repo.get_by_id(tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown tenant",
        )
    return tenant


CurrentTenant = Annotated[Tenant, Depends(get_current_tenant)]


async def get_current_principal(
    tenant: CurrentTenant,
    principal_repo: PrincipalRepo,
    x_principal_id: Annotated[str | None, Header()] = None,
) -> Principal:
    """Resolve the caller. The principal must belong to the header's tenant."""
    principal_id = _parse_id(x_principal_id, "X-Principal-ID")
    principal = await principal_repo.get_in_tenant(principal_id, tenant.id)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown principal",
        )

    bind_principal_context(principal.id, tenant.id, principal.email)
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]

"""Tenant directory endpoints."""

from fastapi import APIRouter, status

from src.shepherd.api.dependencies import CurrentPrincipal, CurrentTenant, TenantServiceDep
from src.shepherd.schemas.principal import PrincipalRead
from src.shepherd.schemas.tenant import TenantBootstrapRequest, TenantBootstrapResponse, TenantRead

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post(
    "/bootstrap",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a tenant and its owner",
)
async def bootstrap_tenant(
    body: TenantBootstrapRequest,
    service: TenantServiceDep,
) -> TenantBootstrapResponse:
    """Onboard a new organization. The owner is the principal created here."""
    tenant, owner = await service.bootstrap_tenant(body.name, body.owner)
    return TenantBootstrapResponse(
        tenant=TenantRead.model_validate(tenant),
        owner=PrincipalRead.model_validate(owner),
    )


@router.get("/current", response_model=TenantRead)
async def read_current_tenant(
    tenant: CurrentTenant,
    principal: CurrentPrincipal,
) -> TenantRead:
    return TenantRead.model_validate(tenant)


@router.post(
    "/current/deactivate",
    response_model=TenantRead,
    responses={403: {"description": "Requires tenant:manage"}},
)
async def deactivate_current_tenant(
    tenant: CurrentTenant,
    principal: CurrentPrincipal,
    service: TenantServiceDep,
) -> TenantRead:
    """Deactivate the caller's tenant. Every later request in it is denied."""
    updated = await service.deactivate_tenant(principal, tenant)
    return TenantRead.model_validate(updated)

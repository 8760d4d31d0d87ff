"""Principal management and authorization endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.shepherd.api.dependencies import (
    CurrentPrincipal,
    CurrentTenant,
    PrincipalServiceDep,
)
from src.shepherd.models import PrincipalStatus, Role
from src.shepherd.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page
from src.shepherd.schemas.principal import (
    AuthorizeRequest,
    AuthorizeResponse,
    EffectivePermissions,
    GrantRequest,
    PrincipalCreate,
    PrincipalRead,
    RoleChangeRequest,
)
from src.shepherd.services.permissions import ResourceRef, authorize

router = APIRouter(tags=["principals"])


@router.get("/principals", response_model=Page[PrincipalRead])
async def list_principals(
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
    role: Role | None = None,
    principal_status: Annotated[PrincipalStatus | None, Query(alias="status")] = None,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> Page[PrincipalRead]:
    items, next_cursor, has_more = await service.list_principals(
        principal, tenant, role=role, status=principal_status, cursor=cursor, limit=limit
    )
    return Page(
        items=[PrincipalRead.model_validate(p) for p in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("/principals", response_model=PrincipalRead, status_code=status.HTTP_201_CREATED)
async def create_principal(
    body: PrincipalCreate,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    created = await service.create_principal(principal, tenant, body, body.role)
    return PrincipalRead.model_validate(created)


@router.get("/principals/me", response_model=PrincipalRead)
async def get_me(
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    me = await service.get_principal(principal, tenant, principal.id)
    return PrincipalRead.model_validate(me)


@router.get("/principals/{principal_id}", response_model=PrincipalRead)
async def get_principal(
    principal_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    found = await service.get_principal(principal, tenant, principal_id)
    return PrincipalRead.model_validate(found)


@router.patch("/principals/{principal_id}/role", response_model=PrincipalRead)
async def change_role(
    principal_id: UUID,
    body: RoleChangeRequest,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    """Promote or demote. Both roles must be below the caller's."""
    updated = await service.change_role(principal, tenant, principal_id, body.role)
    return PrincipalRead.model_validate(updated)


@router.post("/principals/{principal_id}/grants", response_model=PrincipalRead)
async def grant_permission(
    principal_id: UUID,
    body: GrantRequest,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    updated = await service.grant_permission(principal, tenant, principal_id, body.permission)
    return PrincipalRead.model_validate(updated)


@router.delete("/principals/{principal_id}/grants/{permission}", response_model=PrincipalRead)
async def revoke_permission(
    principal_id: UUID,
    permission: str,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    updated = await service.revoke_permission(principal, tenant, principal_id, permission)
    return PrincipalRead.model_validate(updated)


@router.post("/principals/{principal_id}/suspend", response_model=PrincipalRead)
async def suspend_principal(
    principal_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    updated = await service.suspend(principal, tenant, principal_id)
    return PrincipalRead.model_validate(updated)


@router.post("/principals/{principal_id}/reactivate", response_model=PrincipalRead)
async def reactivate_principal(
    principal_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> PrincipalRead:
    updated = await service.reactivate(principal, tenant, principal_id)
    return PrincipalRead.model_validate(updated)


@router.get("/principals/{principal_id}/permissions", response_model=EffectivePermissions)
async def get_effective_permissions(
    principal_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: PrincipalServiceDep,
) -> EffectivePermissions:
    target, permissions = await service.effective_permissions(principal, tenant, principal_id)
    return EffectivePermissions(
        principal_id=target.id,
        role=target.role_enum,
        permissions=sorted(permissions),
    )


@router.post("/authorize", response_model=AuthorizeResponse)
async def check_authorization(
    body: AuthorizeRequest,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
) -> AuthorizeResponse:
    """Ask whether the caller may perform an action. Never raises 403."""
    resource = (
        ResourceRef(body.resource_tenant_id) if body.resource_tenant_id is not None else None
    )
    return AuthorizeResponse(
        allowed=authorize(principal, tenant, body.action, resource),
        action=body.action,
    )

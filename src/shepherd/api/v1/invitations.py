"""Invitation endpoints.

Issuing, listing and deactivating need a caller. Previewing and redeeming a code
are public (the code is the credential) and rate limited per client IP.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from src.shepherd.api.dependencies import (
    CurrentPrincipal,
    CurrentTenant,
    InvitationServiceDep,
)
from src.shepherd.core.rate_limit import limiter, redeem_limit
from src.shepherd.schemas.invitation import (
    InvitationCreate,
    InvitationPreview,
    InvitationRead,
    RedeemRequest,
)
from src.shepherd.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page
from src.shepherd.schemas.principal import PrincipalRead
from src.shepherd.services.invitation_service import ttl_from_hours

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post(
    "",
    response_model=InvitationRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Missing invite:create, or target role not below yours"},
        422: {"description": "TTL, max uses or default staff out of bounds"},
    },
)
async def issue_invitation(
    body: InvitationCreate,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: InvitationServiceDep,
) -> InvitationRead:
    token = await service.issue(
        principal,
        tenant,
        target_role=body.target_role,
        ttl=ttl_from_hours(body.ttl_hours) if body.ttl_hours is not None else None,
        max_uses=body.max_uses,
        target_group_id=body.target_group_id,
        default_staff_id=body.default_staff_id,
    )
    return InvitationRead.model_validate(token)


@router.get("", response_model=Page[InvitationRead])
async def list_invitations(
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: InvitationServiceDep,
    active_only: bool = False,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> Page[InvitationRead]:
    """List invitations. Without invite:manage only your own are returned."""
    items, next_cursor, has_more = await service.list_tokens(
        principal, tenant, active_only=active_only, cursor=cursor, limit=limit
    )
    return Page(
        items=[InvitationRead.model_validate(t) for t in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("/{token_id}/deactivate", response_model=InvitationRead)
async def deactivate_invitation(
    token_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: InvitationServiceDep,
) -> InvitationRead:
    token = await service.deactivate(principal, tenant, token_id)
    return InvitationRead.model_validate(token)


@router.get(
    "/code/{code}",
    response_model=InvitationPreview,
    responses={404: {"description": "Unknown code"}, 410: {"description": "Code unusable"}},
)
@limiter.limit(redeem_limit)
async def preview_invitation(
    request: Request,
    code: str,
    service: InvitationServiceDep,
) -> InvitationPreview:
    """Describe a code for the accept page. Does not consume a use."""
    return await service.preview(code)


@router.post(
    "/code/{code}/redeem",
    response_model=PrincipalRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Unknown code"},
        409: {"description": "Lost a concurrent redemption, retry"},
        410: {"description": "Code expired, exhausted or inactive"},
    },
)
@limiter.limit(redeem_limit)
async def redeem_invitation(
    request: Request,
    code: str,
    body: RedeemRequest,
    service: InvitationServiceDep,
) -> PrincipalRead:
    principal = await service.redeem(code, body)
    return PrincipalRead.model_validate(principal)

"""Follow-up assignment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.shepherd.api.dependencies import CurrentPrincipal, CurrentTenant, FollowUpServiceDep
from src.shepherd.schemas.followup import FollowUpAssign, FollowUpRead, FollowUpStatusUpdate
from src.shepherd.schemas.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page

router = APIRouter(prefix="/followups", tags=["followups"])


@router.post(
    "",
    response_model=FollowUpRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "A concurrent assignment for this guest won"}},
)
async def assign_followup(
    body: FollowUpAssign,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: FollowUpServiceDep,
) -> FollowUpRead:
    """Assign a guest to a staff member, closing any open assignment."""
    assignment = await service.assign(
        principal, tenant, body.guest_id, body.staff_id, notes=body.notes
    )
    return FollowUpRead.model_validate(assignment)


@router.get("", response_model=Page[FollowUpRead])
async def list_followups(
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: FollowUpServiceDep,
    guest_id: UUID | None = None,
    active_only: bool = False,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> Page[FollowUpRead]:
    items, next_cursor, has_more = await service.list_assignments(
        principal,
        tenant,
        guest_id=guest_id,
        active_only=active_only,
        cursor=cursor,
        limit=limit,
    )
    return Page(
        items=[FollowUpRead.model_validate(a) for a in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get("/{assignment_id}", response_model=FollowUpRead)
async def get_followup(
    assignment_id: UUID,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: FollowUpServiceDep,
) -> FollowUpRead:
    assignment = await service.get_assignment(principal, tenant, assignment_id)
    return FollowUpRead.model_validate(assignment)


@router.patch(
    "/{assignment_id}/status",
    response_model=FollowUpRead,
    responses={409: {"description": "Terminal assignment or concurrent update"}},
)
async def update_followup_status(
    assignment_id: UUID,
    body: FollowUpStatusUpdate,
    principal: CurrentPrincipal,
    tenant: CurrentTenant,
    service: FollowUpServiceDep,
) -> FollowUpRead:
    assignment = await service.update_status(
        principal,
        tenant,
        assignment_id,
        body.status,
        notes=body.notes,
        next_contact_at=body.next_contact_at,
    )
    return FollowUpRead.model_validate(assignment)

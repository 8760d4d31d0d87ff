"""Integration tests for the invitation lifecycle (issue, redeem, deactivate, preview, list)."""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from src.shepherd.core.exceptions import (
    InvalidRequest,
    NotFound,
    TokenExhausted,
    TokenExpired,
    TokenInactive,
    TokenNotFound,
    Unauthorized,
    Unavailable,
)
from src.shepherd.models import (
    EventType,
    FollowUpAssignment,
    FollowUpStatus,
    InvitationToken,
    Principal,
    Role,
)
from src.shepherd.schemas.principal import NewPrincipalInfo

pytestmark = pytest.mark.integration


def newcomer(name: str = "New Comer", email: str | None = None) -> NewPrincipalInfo:
    return NewPrincipalInfo(full_name=name, email=email)


class TestIssue:
    """Issuing codes: authorization, role ceiling and bounds."""

    async def test_staff_issues_guest_code(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, ttl=timedelta(hours=48), max_uses=3
        )

        assert token.tenant_id == congregation.tenant.id
        assert token.created_by == congregation.staff.id
        assert token.current_uses == 0
        assert token.active is True
        assert token.expires_at == clock.now() + timedelta(hours=48)
        assert len(token.code) >= 32

    async def test_defaults_from_settings(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.admin, congregation.tenant, Role.MEMBER
        )
        assert token.max_uses == 10
        assert token.expires_at == clock.now() + timedelta(hours=720)

    async def test_codes_are_unique(self, services, congregation):
        tokens = [
            await services.invitations.issue(congregation.admin, congregation.tenant, Role.GUEST)
            for _ in range(5)
        ]
        codes = {t.code for t in tokens}
        assert len(codes) == 5

    @pytest.mark.parametrize("target", [Role.STAFF, Role.ADMIN, Role.OWNER])
    async def test_staff_cannot_invite_at_or_above_own_role(self, services, congregation, target):
        with pytest.raises(Unauthorized):
            await services.invitations.issue(congregation.staff, congregation.tenant, target)

    async def test_admin_can_invite_staff(self, services, congregation):
        token = await services.invitations.issue(
            congregation.admin, congregation.tenant, Role.STAFF
        )
        assert token.target_role == Role.STAFF.value

    @pytest.mark.parametrize("issuer", ["member", "guest"])
    async def test_without_invite_create_denied(self, services, congregation, issuer):
        with pytest.raises(Unauthorized):
            await services.invitations.issue(
                getattr(congregation, issuer), congregation.tenant, Role.GUEST
            )

    async def test_explicit_grant_enables_inviting(self, services, congregation):
        member = await services.principals.grant_permission(
            congregation.admin, congregation.tenant, congregation.member.id, "invite:create"
        )
        token = await services.invitations.issue(member, congregation.tenant, Role.GUEST)
        assert token.created_by == congregation.member.id

    @pytest.mark.parametrize(
        ("ttl", "max_uses"),
        [
            (timedelta(0), 1),
            (timedelta(hours=-1), 1),
            (timedelta(hours=721), 1),
            (timedelta(hours=1), 0),
            (timedelta(hours=1), 1001),
        ],
    )
    async def test_bounds(self, services, congregation, ttl, max_uses):
        with pytest.raises(InvalidRequest):
            await services.invitations.issue(
                congregation.admin, congregation.tenant, Role.GUEST, ttl=ttl, max_uses=max_uses
            )

    async def test_default_staff_must_be_staff(self, services, congregation):
        with pytest.raises(InvalidRequest):
            await services.invitations.issue(
                congregation.admin,
                congregation.tenant,
                Role.GUEST,
                default_staff_id=congregation.member.id,
            )

    async def test_default_staff_only_for_guest_codes(self, services, congregation):
        with pytest.raises(InvalidRequest):
            await services.invitations.issue(
                congregation.admin,
                congregation.tenant,
                Role.MEMBER,
                default_staff_id=congregation.staff.id,
            )

    async def test_default_staff_from_other_tenant_rejected(
        self, services, congregation, other_congregation
    ):
        with pytest.raises(InvalidRequest):
            await services.invitations.issue(
                congregation.admin,
                congregation.tenant,
                Role.GUEST,
                default_staff_id=other_congregation.staff.id,
            )

    async def test_inactive_tenant_denies_issue(self, services, congregation):
        await services.tenants.deactivate_tenant(congregation.owner, congregation.tenant)
        tenant = await services.tenants.get_tenant(congregation.tenant.id)
        with pytest.raises(Unauthorized):
            await services.invitations.issue(congregation.owner, tenant, Role.GUEST)


class TestRedeem:
    """Redeeming codes admits principals and consumes uses."""

    async def test_three_use_token(self, services, congregation):
        """Three redemptions succeed, the fourth finds the token exhausted."""
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, max_uses=3
        )

        admitted = [
            await services.invitations.redeem(token.code, newcomer(f"Guest {i}"))
            for i in range(3)
        ]
        assert len({p.id for p in admitted}) == 3
        assert all(p.role == Role.GUEST.value for p in admitted)
        assert all(p.tenant_id == congregation.tenant.id for p in admitted)
        assert all(p.invitation_id == token.id for p in admitted)

        with pytest.raises(TokenExhausted):
            await services.invitations.redeem(token.code, newcomer("Guest 4"))

        await services.session.refresh(token)
        assert token.current_uses == 3
        assert token.active is False

    async def test_admits_with_target_role_and_group(self, services, congregation):
        group_id = uuid4()
        token = await services.invitations.issue(
            congregation.admin, congregation.tenant, Role.STAFF, target_group_id=group_id
        )
        principal = await services.invitations.redeem(
            token.code, newcomer("Deacon Dan", "Dan@Example.com")
        )

        assert principal.role == Role.STAFF.value
        assert principal.group_id == group_id
        assert principal.email == "dan@example.com"
        assert principal.explicit_grants == []
        assert principal.assigned_staff_id is None

    async def test_expiry_uses_injected_clock(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, ttl=timedelta(hours=1)
        )
        clock.advance(timedelta(minutes=59))
        await services.invitations.redeem(token.code, newcomer())

        clock.advance(timedelta(minutes=1))
        with pytest.raises(TokenExpired):
            await services.invitations.redeem(token.code, newcomer())

    async def test_unknown_code(self, services, congregation):
        with pytest.raises(TokenNotFound):
            await services.invitations.redeem("no-such-code", newcomer())

    async def test_deactivated_token(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        await services.invitations.deactivate(congregation.staff, congregation.tenant, token.id)

        with pytest.raises(TokenInactive):
            await services.invitations.redeem(token.code, newcomer())

    async def test_inactive_tenant(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        await services.tenants.deactivate_tenant(congregation.owner, congregation.tenant)

        with pytest.raises(TokenInactive):
            await services.invitations.redeem(token.code, newcomer())

    async def test_expired_reported_before_inactive(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, ttl=timedelta(hours=1)
        )
        await services.invitations.deactivate(congregation.staff, congregation.tenant, token.id)
        clock.advance(timedelta(hours=2))

        with pytest.raises(TokenExpired):
            await services.invitations.redeem(token.code, newcomer())

    async def test_failed_redeem_consumes_nothing(self, services, congregation, clock, db_session):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, ttl=timedelta(hours=1)
        )
        clock.advance(timedelta(hours=1))
        with pytest.raises(TokenExpired):
            await services.invitations.redeem(token.code, newcomer("Late Larry"))

        await services.session.refresh(token)
        assert token.current_uses == 0
        result = await db_session.execute(
            select(Principal).where(Principal.full_name == "Late Larry")
        )
        assert result.scalars().first() is None

    async def test_store_deadline_consumes_nothing(
        self, services, congregation, monkeypatch, db_session
    ):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, max_uses=1
        )
        token_id, code = token.id, token.code
        consume = services.invitations.invitation_repo.try_consume

        async def slow_consume(consumed_id, now):
            await asyncio.sleep(1)
            return await consume(consumed_id, now)

        monkeypatch.setattr(services.invitations.invitation_repo, "try_consume", slow_consume)
        with pytest.raises(Unavailable):
            await services.invitations.redeem(code, newcomer("Slow Sam"), timeout=0.05)

        stored = await db_session.get(InvitationToken, token_id, populate_existing=True)
        assert stored.current_uses == 0
        assert stored.active is True
        result = await db_session.execute(
            select(Principal).where(Principal.full_name == "Slow Sam")
        )
        assert result.scalars().first() is None

        monkeypatch.setattr(services.invitations.invitation_repo, "try_consume", consume)
        admitted = await services.invitations.redeem(code, newcomer("Patient Pat"))
        assert admitted.invitation_id == token_id

    async def test_caller_deadline_rolls_back(
        self, services, congregation, monkeypatch, db_session
    ):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, max_uses=1
        )
        token_id, code = token.id, token.code
        consume = services.invitations.invitation_repo.try_consume

        async def consume_then_stall(consumed_id, now):
            consumed = await consume(consumed_id, now)
            await asyncio.sleep(1)
            return consumed

        monkeypatch.setattr(
            services.invitations.invitation_repo, "try_consume", consume_then_stall
        )
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await services.invitations.redeem(code, newcomer())

        stored = await db_session.get(InvitationToken, token_id, populate_existing=True)
        assert stored.current_uses == 0

    async def test_default_staff_creates_pending_followup(
        self, services, congregation, dispatcher, transport, db_session
    ):
        token = await services.invitations.issue(
            congregation.staff,
            congregation.tenant,
            Role.GUEST,
            default_staff_id=congregation.staff.id,
        )
        guest = await services.invitations.redeem(token.code, newcomer("Ruth"))

        assert guest.assigned_staff_id == congregation.staff.id
        result = await db_session.execute(
            select(FollowUpAssignment).where(FollowUpAssignment.guest_id == guest.id)
        )
        assignments = result.scalars().all()
        assert len(assignments) == 1
        assert assignments[0].status == FollowUpStatus.PENDING.value
        assert assignments[0].staff_id == congregation.staff.id

        await dispatcher.drain()
        admitted = transport.of_type(EventType.PRINCIPAL_ADMITTED)
        assigned = transport.of_type(EventType.FOLLOWUP_ASSIGNED)
        assert [e.recipient_ids for e in admitted] == [[congregation.staff.id]]
        assert [e.recipient_ids for e in assigned] == [[congregation.staff.id]]

    async def test_ineligible_default_staff_admits_unassigned(
        self, services, congregation, db_session
    ):
        token = await services.invitations.issue(
            congregation.admin,
            congregation.tenant,
            Role.GUEST,
            default_staff_id=congregation.staff.id,
        )
        await services.principals.suspend(
            congregation.admin, congregation.tenant, congregation.staff.id
        )

        guest = await services.invitations.redeem(token.code, newcomer("Orpah"))

        assert guest.assigned_staff_id is None
        result = await db_session.execute(
            select(FollowUpAssignment).where(FollowUpAssignment.guest_id == guest.id)
        )
        assert result.scalars().first() is None

    async def test_admitted_event_emitted_once_per_redemption(
        self, services, congregation, dispatcher, transport
    ):
        token = await services.invitations.issue(
            congregation.admin, congregation.tenant, Role.MEMBER, max_uses=2
        )
        await services.invitations.redeem(token.code, newcomer("One"))
        await services.invitations.redeem(token.code, newcomer("Two"))

        await dispatcher.drain()
        events = transport.of_type(EventType.PRINCIPAL_ADMITTED)
        assert len(events) == 2
        assert len({e.id for e in events}) == 2
        assert all(e.tenant_id == congregation.tenant.id for e in events)


class TestPreview:
    async def test_preview_does_not_consume(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, max_uses=2
        )

        preview = await services.invitations.preview(token.code)
        await services.invitations.preview(token.code)

        assert preview.tenant_name == congregation.tenant.name
        assert preview.target_role == Role.GUEST
        assert preview.remaining_uses == 2
        token = await services.invitations.invitation_repo.refresh(token)
        assert token.current_uses == 0

    async def test_preview_reports_terminal_state(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST, max_uses=1
        )
        await services.invitations.redeem(token.code, newcomer())

        with pytest.raises(TokenExhausted):
            await services.invitations.preview(token.code)

    async def test_preview_unknown_code(self, services, congregation):
        with pytest.raises(TokenNotFound):
            await services.invitations.preview("missing")


class TestDeactivate:
    async def test_issuer_deactivates_own_token(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        token = await services.invitations.deactivate(
            congregation.staff, congregation.tenant, token.id
        )

        assert token.active is False
        assert token.deactivated_at == clock.now()

    async def test_idempotent(self, services, congregation, clock):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        first = await services.invitations.deactivate(
            congregation.staff, congregation.tenant, token.id
        )
        clock.advance(timedelta(hours=1))
        second = await services.invitations.deactivate(
            congregation.staff, congregation.tenant, token.id
        )

        assert second.active is False
        assert second.deactivated_at == first.deactivated_at

    async def test_other_staff_cannot_deactivate(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        with pytest.raises(Unauthorized):
            await services.invitations.deactivate(
                congregation.other_staff, congregation.tenant, token.id
            )

    async def test_admin_deactivates_any_token(self, services, congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        token = await services.invitations.deactivate(
            congregation.admin, congregation.tenant, token.id
        )
        assert token.active is False

    async def test_cross_tenant_denied(self, services, congregation, other_congregation):
        token = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        with pytest.raises(Unauthorized):
            await services.invitations.deactivate(
                other_congregation.owner, other_congregation.tenant, token.id
            )

    async def test_unknown_token(self, services, congregation):
        with pytest.raises(NotFound):
            await services.invitations.deactivate(congregation.admin, congregation.tenant, uuid4())


class TestListTokens:
    async def test_admin_sees_all_staff_sees_own(self, services, congregation):
        mine = await services.invitations.issue(
            congregation.staff, congregation.tenant, Role.GUEST
        )
        await services.invitations.issue(congregation.other_staff, congregation.tenant, Role.GUEST)
        await services.invitations.issue(congregation.admin, congregation.tenant, Role.MEMBER)

        all_items, _, _ = await services.invitations.list_tokens(
            congregation.admin, congregation.tenant
        )
        own_items, _, _ = await services.invitations.list_tokens(
            congregation.staff, congregation.tenant
        )

        assert len(all_items) == 3
        assert [t.id for t in own_items] == [mine.id]

    async def test_member_denied(self, services, congregation):
        with pytest.raises(Unauthorized):
            await services.invitations.list_tokens(congregation.member, congregation.tenant)

    async def test_tenant_isolation(self, services, congregation, other_congregation):
        await services.invitations.issue(congregation.admin, congregation.tenant, Role.GUEST)

        items, _, _ = await services.invitations.list_tokens(
            other_congregation.admin, other_congregation.tenant
        )
        assert items == []

    async def test_active_only_and_pagination(self, services, congregation):
        tokens = [
            await services.invitations.issue(congregation.admin, congregation.tenant, Role.GUEST)
            for _ in range(5)
        ]
        await services.invitations.deactivate(congregation.admin, congregation.tenant, tokens[0].id)

        first, cursor, has_more = await services.invitations.list_tokens(
            congregation.admin, congregation.tenant, active_only=True, limit=3
        )
        second, last_cursor, more_after = await services.invitations.list_tokens(
            congregation.admin, congregation.tenant, active_only=True, cursor=cursor, limit=3
        )

        assert has_more is True
        assert len(first) == 3
        assert len(second) == 1
        assert more_after is False
        assert last_cursor is None
        seen = {t.id for t in first + second}
        assert seen == {t.id for t in tokens[1:]}

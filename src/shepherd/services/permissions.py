"""Role & permission resolver.

Pure functions over a principal/tenant snapshot: no I/O, no caching. Every
mutating service operation goes through ``require`` before touching the store.

Effective permissions are ``baseline(role) | explicit_grants``. Baselines are
cumulative, so a higher role's baseline always contains every lower role's.
Explicit grants only add; an entry shaped like a removal (``-perm``) is ignored.
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from src.shepherd.core.exceptions import Unauthorized
from src.shepherd.models import Principal, PrincipalStatus, Role, Tenant

REVOCATION_PREFIX = "-"

# Capabilities each role adds on top of every role below it.
ROLE_ADDITIONS: dict[Role, frozenset[str]] = {
    Role.GUEST: frozenset(
        {
            "profile:read",
            "profile:update",
            "events:read",
            "prayers:create",
        }
    ),
    Role.MEMBER: frozenset(
        {
            "announcements:read",
            "directory:read",
            "prayers:read",
            "tasks:read",
        }
    ),
    Role.STAFF: frozenset(
        {
            "attendance:mark",
            "followup:read",
            "followup:update",
            "invite:create",
            "tasks:update",
        }
    ),
    Role.ADMIN: frozenset(
        {
            "followup:assign",
            "followup:override",
            "followup:read_all",
            "grants:manage",
            "invite:manage",
            "principals:create",
            "principals:promote",
            "principals:read",
            "principals:suspend",
        }
    ),
    Role.OWNER: frozenset({"tenant:manage"}),
}

PERMISSION_CATALOG: frozenset[str] = frozenset().union(*ROLE_ADDITIONS.values())


class TenantScoped(Protocol):
    tenant_id: UUID


@dataclass(frozen=True)
class ResourceRef:
    """Bare tenant reference for checks against a resource not loaded here."""

    tenant_id: UUID


def baseline(role: Role) -> frozenset[str]:
    """Fixed capabilities implied by ``role`` alone."""
    granted: set[str] = set()
    for candidate in Role.ordered():
        if candidate <= role:
            granted |= ROLE_ADDITIONS.get(candidate, frozenset())
    return frozenset(granted)


def resolve(principal: Principal) -> frozenset[str]:
    """Effective permission set: role baseline plus additive explicit grants."""
    additions = {
        grant
        for grant in principal.explicit_grants or []
        if grant and not grant.startswith(REVOCATION_PREFIX)
    }
    return baseline(principal.role_enum) | additions


def authorize(
    principal: Principal,
    tenant: Tenant | None,
    action: str,
    resource: TenantScoped | None = None,
) -> bool:
    """Decide whether ``principal`` may perform ``action`` on ``resource``.

    Fails closed: a missing, inactive or foreign tenant, a suspended principal,
    or a resource from another tenant all deny, for every role including owner.
    """
    if tenant is None or not tenant.active or tenant.id != principal.tenant_id:
        return False
    if principal.status != PrincipalStatus.ACTIVE.value:
        return False
    if resource is not None and resource.tenant_id != principal.tenant_id:
        return False
    return action in resolve(principal)


def require(
    principal: Principal,
    tenant: Tenant | None,
    action: str,
    resource: TenantScoped | None = None,
) -> None:
    """Raise ``Unauthorized`` unless ``authorize`` allows the action."""
    if not authorize(principal, tenant, action, resource):
        raise Unauthorized(f"Not authorized: {action}", action=action)


def require_outranks(actor: Principal, *roles: Role) -> None:
    """Raise ``Unauthorized`` unless every role is strictly below the actor's.

    Guards invitation, creation and promotion against privilege escalation: no
    principal may hand out or manage a role at or above its own.
    """
    actor_role = actor.role_enum
    for role in roles:
        if role >= actor_role:
            raise Unauthorized(
                f"Role '{role.value}' is not below your role '{actor_role.value}'",
                role=role.value,
            )

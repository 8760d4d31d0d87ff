"""Shared enums for models."""

from enum import Enum


class Role(str, Enum):
    """Principal role within a tenant, totally ordered by privilege.

    Ordering uses ``level`` rather than the string value. Levels are spaced so a
    custom role can be inserted between two existing ones without renumbering.
    """

    GUEST = "guest"
    MEMBER = "member"
    STAFF = "staff"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.level < other.level

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.level <= other.level

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.level > other.level

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.level >= other.level

    @classmethod
    def ordered(cls) -> list["Role"]:
        """All roles from least to most privileged."""
        return sorted(cls, key=lambda role: role.level)


_ROLE_LEVELS: dict[str, int] = {
    "guest": 10,
    "member": 20,
    "staff": 30,
    "admin": 40,
    "owner": 50,
}


class PrincipalStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class FollowUpStatus(str, Enum):
    """Follow-up progression. The four forward states are totally ordered;
    ``reassigned`` is a terminal side state set only by a new assignment."""

    PENDING = "pending"
    CONTACTED = "contacted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REASSIGNED = "reassigned"

    @property
    def is_terminal(self) -> bool:
        return self in (FollowUpStatus.COMPLETED, FollowUpStatus.REASSIGNED)

    @classmethod
    def active_values(cls) -> list[str]:
        """Stored values of the non-terminal states."""
        return [s.value for s in cls if not s.is_terminal]


class EventType(str, Enum):
    """User-visible transitions emitted to the notification dispatcher."""

    PRINCIPAL_ADMITTED = "principal.admitted"
    PRINCIPAL_ROLE_CHANGED = "principal.role_changed"
    FOLLOWUP_ASSIGNED = "followup.assigned"
    FOLLOWUP_REASSIGNED = "followup.reassigned"
    FOLLOWUP_STATUS_CHANGED = "followup.status_changed"

"""Model exports.

Import from here: `from src.shepherd.models import Principal, Tenant`
"""

from src.shepherd.models.enums import EventType, FollowUpStatus, PrincipalStatus, Role
from src.shepherd.models.followup import FollowUpAssignment
from src.shepherd.models.invitation import InvitationToken
from src.shepherd.models.principal import Principal
from src.shepherd.models.tenant import Tenant

__all__ = [
    # Enums
    "EventType",
    "FollowUpStatus",
    "PrincipalStatus",
    "Role",
    # Models
    "FollowUpAssignment",
    "InvitationToken",
    "Principal",
    "Tenant",
]

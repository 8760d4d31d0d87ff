"""Repository layer - data access abstraction."""

from src.shepherd.repositories.base import BaseRepository
from src.shepherd.repositories.followup import FollowUpRepository
from src.shepherd.repositories.invitation import InvitationRepository
from src.shepherd.repositories.principal import PrincipalRepository
from src.shepherd.repositories.tenant import TenantRepository

__all__ = [
    "BaseRepository",
    "FollowUpRepository",
    "InvitationRepository",
    "PrincipalRepository",
    "TenantRepository",
]

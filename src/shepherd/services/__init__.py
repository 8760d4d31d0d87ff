"""Service layer - business operations over the repositories."""

from src.shepherd.services.followup_service import FollowUpService
from src.shepherd.services.invitation_service import InvitationService
from src.shepherd.services.principal_service import PrincipalService
from src.shepherd.services.tenant_service import TenantService

__all__ = [
    "FollowUpService",
    "InvitationService",
    "PrincipalService",
    "TenantService",
]

"""Test factories for generating test data.

    from tests.factories import PrincipalFactory, TenantFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.followup import FollowUpAssignmentFactory
from tests.factories.invitation import InvitationTokenFactory
from tests.factories.principal import PrincipalFactory
from tests.factories.tenant import TenantFactory

__all__ = [
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    "FollowUpAssignmentFactory",
    "InvitationTokenFactory",
    "PrincipalFactory",
    "TenantFactory",
]

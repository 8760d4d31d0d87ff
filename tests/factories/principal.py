"""Principal factory for test data generation."""

from polyfactory import Use

from src.shepherd.models import Principal, PrincipalStatus, Role
from tests.factories.base import BaseFactory, generate_uuid, short_suffix, utc_now


class PrincipalFactory(BaseFactory):
    __model__ = Principal

    # FK fields - must be set explicitly
    tenant_id = None
    assigned_staff_id = None

    id = Use(generate_uuid)
    role = Role.MEMBER.value
    explicit_grants = Use(list)
    status = PrincipalStatus.ACTIVE.value
    full_name = Use(lambda: f"Test Person {short_suffix()}")
    email = Use(lambda: f"person_{short_suffix()}@example.com")
    group_id = None
    invitation_id = None
    created_at = Use(utc_now)
    updated_at = Use(utc_now)

    @classmethod
    def with_role(cls, role: Role, **kwargs):
        return cls.build(role=role.value, **kwargs)

    @classmethod
    def suspended(cls, **kwargs):
        return cls.build(status=PrincipalStatus.SUSPENDED.value, **kwargs)

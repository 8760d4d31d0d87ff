"""Repository for Tenant entity."""

from src.shepherd.models import Tenant
from src.shepherd.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    model = Tenant

from fastapi import APIRouter

from src.shepherd.api.v1 import followups, invitations, principals, tenants

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tenants.router)
api_router.include_router(invitations.router)
api_router.include_router(principals.router)
api_router.include_router(followups.router)

"""Members service routers package."""

from services.members_service.routers.admin_users import router as admin_users_router
from services.members_service.routers.auth import router as auth_router
from services.members_service.routers.contact import router as contact_router
from services.members_service.routers.referrals import router as referrals_router
from services.members_service.routers.users import router as users_router
from services.members_service.routers.wholesale import (
    admin_router as wholesale_admin_router,
)
from services.members_service.routers.wholesale import router as wholesale_router

__all__ = [
    "auth_router",
    "users_router",
    "referrals_router",
    "admin_users_router",
    "wholesale_router",
    "wholesale_admin_router",
    "contact_router",
]

from sessiongate.web.routers.auth import router as auth_router
from sessiongate.web.routers.profile import router as profile_router
from sessiongate.web.routers.users import router as users_router

__all__ = [
    "auth_router",
    "profile_router",
    "users_router",
]

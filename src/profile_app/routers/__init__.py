from profile_app.routers.auth_api import legacy_router as legacy_refresh_router
from profile_app.routers.auth_api import router as auth_router

__all__ = ["auth_router", "legacy_refresh_router"]

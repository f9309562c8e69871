"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and auth are open routers; individual auth routes that
need a user (me, logout, update-password) depend on get_current_user
themselves. Users and content routes take the current user as a
handler argument because the services need it for access decisions,
so it isn't applied again at the include_router level.
"""

from fastapi import APIRouter

from oportal.api.auth import router as auth_router
from oportal.api.content import router as content_router
from oportal.api.health import router as health_router
from oportal.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: every handler depends on get_current_user
api_router.include_router(users_router, tags=["users"])
api_router.include_router(content_router, tags=["content"])

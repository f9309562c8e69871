"""User API routes — own profile, preferences, admin listing.

Learn: `/users/me...` routes are declared before `/users/{user_id}` so
"me" is never parsed as an id. Self-or-admin checks live in
UserService; the admin-only listing is enforced with require_roles().
"""

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from oportal.auth.dependencies import get_current_user, require_roles
from oportal.db.engine import get_db
from oportal.db.models import ROLE_ADMIN, User
from oportal.db.stores import UserStore
from oportal.schemas.user import UserPage, UserRead, UserUpdate
from oportal.services.user_service import UserService

router = APIRouter(prefix="/users")


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(UserStore(db))


# ─── Me ─────────────────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserRead)
async def update_me(
    body: UserUpdate,
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    """Change username and/or merge preferences."""
    return await svc.update_profile(
        user, username=body.username, preferences=body.preferences
    )


@router.patch("/me/preferences", response_model=UserRead)
async def update_my_preferences(
    body: dict[str, Any],
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    return await svc.update_preferences(user, body)


@router.delete("/me", status_code=204)
async def delete_me(
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    """Deactivate the caller's own account."""
    await svc.deactivate(user, user.id)
    return Response(status_code=204)


# ─── Admin / by id ──────────────────────────────────────


@router.get("", response_model=UserPage)
async def list_users(
    search: Optional[str] = Query(None, description="Match username or email"),
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _admin: User = Depends(require_roles(ROLE_ADMIN)),
    svc: UserService = Depends(_user_svc),
):
    return await svc.list_users(search=search, role=role, page=page, limit=limit)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    return await svc.get_user(user, user_id)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    await svc.deactivate(user, user_id)
    return Response(status_code=204)

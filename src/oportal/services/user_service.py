"""User service — profile, preferences, deactivation, admin listing."""

import uuid
from typing import Any, Optional

import structlog

from oportal.db.models import User
from oportal.db.stores import UserStore, total_pages
from oportal.errors import DuplicateUsername, NotFoundError, ValidationError
from oportal.policy import can_manage_user, require

logger = structlog.get_logger()


class UserService:
    """Business logic for managing accounts (not sessions — see AuthService)."""

    def __init__(self, users: UserStore):
        self.users = users

    async def get_user(self, actor: User, user_id: uuid.UUID) -> User:
        require(can_manage_user(actor, user_id))
        user = await self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_profile(
        self,
        user: User,
        username: Optional[str] = None,
        preferences: Optional[dict[str, Any]] = None,
    ) -> User:
        """Change username and/or merge preferences."""
        if username is None and preferences is None:
            raise ValidationError("No valid fields provided for update")

        if username is not None:
            username = username.strip()
            if await self.users.username_taken(username, exclude_id=user.id):
                raise DuplicateUsername()
            user.username = username
        if preferences is not None:
            user.preferences = {**user.preferences, **preferences}

        return await self.users.save(user)

    async def update_preferences(self, user: User, preferences: dict[str, Any]) -> User:
        """Shallow-merge new preference keys over the stored ones."""
        if not preferences:
            raise ValidationError("No preferences provided for update")
        user.preferences = {**user.preferences, **preferences}
        return await self.users.save(user)

    async def deactivate(self, actor: User, user_id: uuid.UUID) -> None:
        """Soft-delete an account and revoke all its refresh tokens."""
        require(can_manage_user(actor, user_id))
        user = await self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")

        user.active = False
        user.refresh_tokens = []
        await self.users.save(user)
        logger.info("user.deactivated", user_id=str(user_id), actor_id=str(actor.id))

    async def list_users(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict[str, Any]:
        items, total = await self.users.list_users(
            search=search, role=role, page=page, limit=limit
        )
        return {
            "results": len(items),
            "total": total,
            "total_pages": total_pages(total, limit),
            "current_page": page,
            "data": items,
        }

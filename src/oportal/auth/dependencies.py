"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

The access token is read from the `Authorization: Bearer` header first
(API clients), then from the `jwt` cookie (browsers). Everything after
that — signature, expiry, user still active, token not older than the
last password change — is AuthService.authenticate().
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from oportal.auth.cookies import ACCESS_COOKIE
from oportal.auth.tokens import TokenService
from oportal.config import settings
from oportal.db.engine import get_db
from oportal.db.models import User
from oportal.db.stores import UserStore
from oportal.errors import ForbiddenError
from oportal.services.auth_service import AuthService


@lru_cache
def get_token_service() -> TokenService:
    """One TokenService per process, built from settings."""
    return TokenService.from_settings(settings)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(
        UserStore(db), tokens, refresh_token_limit=settings.refresh_token_limit
    )


def _bearer_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the authenticated user (401 if anything about the token is off)."""
    return await auth.authenticate(_bearer_token(request, authorization))


def require_roles(*roles: str):
    """Dependency factory — 403 unless the current user has one of `roles`."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError("You do not have permission to perform this action")
        return user

    return _check

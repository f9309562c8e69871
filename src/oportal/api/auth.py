"""Auth API — registration, login, token refresh, logout, password change.

Learn: Routes for the session lifecycle:
- POST /auth/register → create a 'user' account, start a session
- POST /auth/login → email/password → token pair
- POST /auth/refresh → rotate a refresh token into a new pair
- GET /auth/me → current user info
- POST /auth/logout → revoke the refresh token (or all of them)
- PATCH /auth/update-password → new password, every old session revoked

Every endpoint that issues tokens returns them in the JSON body *and*
sets them as HttpOnly cookies, so browsers and API clients both work.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from oportal.auth.cookies import REFRESH_COOKIE, clear_token_cookies, set_token_cookies
from oportal.auth.dependencies import get_auth_service, get_current_user
from oportal.config import settings
from oportal.db.models import User
from oportal.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UpdatePasswordRequest,
)
from oportal.schemas.user import UserRead
from oportal.services.auth_service import AuthResult, AuthService

router = APIRouter(prefix="/auth")


def _session_response(response: Response, result: AuthResult) -> AuthResponse:
    set_token_cookies(response, result.tokens, secure=settings.is_production)
    return AuthResponse(
        user=UserRead.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        access_expires_at=result.tokens.access_expires_at,
        refresh_expires_at=result.tokens.refresh_expires_at,
    )


# ─── Register / Login ───────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    """Create a new account. The role is always 'user'."""
    result = await auth.register(body.username, body.email, body.password)
    return _session_response(response, result)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
):
    """Login with email and password → token pair."""
    result = await auth.login(body.email, body.password)
    return _session_response(response, result)


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = Body(None),
    auth: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token (body first, then cookie) for a new pair."""
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    result = await auth.refresh(token)
    set_token_cookies(response, result.tokens, secure=settings.is_production)
    return TokenResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        access_expires_at=result.tokens.access_expires_at,
        refresh_expires_at=result.tokens.refresh_expires_at,
    )


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(user: User = Depends(get_current_user)):
    return user


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    body: Optional[LogoutRequest] = Body(None),
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke the presented refresh token; with none, revoke every session.

    The refreshToken cookie is scoped to the refresh path, so browsers do
    not send it here. A cookie-only client therefore logs out of every
    session; send `refresh_token` in the body to end just this one.
    """
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    await auth.logout(user, token)
    clear_token_cookies(response, secure=settings.is_production)
    return MessageResponse(message="Logged out successfully")


# ─── Password change ────────────────────────────────────


@router.patch("/update-password", response_model=AuthResponse)
async def update_password(
    body: UpdatePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Change the password. Outstanding tokens stop working; a fresh pair is returned."""
    result = await auth.change_password(user, body.current_password, body.new_password)
    return _session_response(response, result)

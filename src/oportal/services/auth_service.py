"""Auth service — register, login, logout, refresh, change password.

Learn: Session state is implicit in token possession. The only server-side
state is the user's list of outstanding refresh tokens (bounded, oldest
evicted first). That list gives us two guarantees:

1. Rotation — every refresh consumes the presented token and issues a
   brand-new pair, so a refresh token works exactly once.
2. Reuse detection — a refresh token with a valid signature that is no
   longer in the list has already been used (or was revoked). That's a
   theft signal: every outstanding token for the user is cleared and the
   user has to log in again on every device.

Access tokens are stateless, but authenticate() still rejects any token
issued before the user's last password change.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from oportal.auth.password import hash_password, verify_password
from oportal.auth.tokens import ACCESS, REFRESH, IssuedTokens, TokenService
from oportal.db.models import ROLE_USER, User, utcnow
from oportal.db.stores import UserStore
from oportal.errors import (
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredentials,
    NoToken,
    StaleToken,
    TokenReused,
    UserGone,
    WrongCurrentPassword,
)

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: IssuedTokens


class AuthService:
    """Business logic for the authentication/session lifecycle."""

    def __init__(
        self,
        users: UserStore,
        tokens: TokenService,
        refresh_token_limit: int = 5,
    ):
        self.users = users
        self.tokens = tokens
        self.refresh_token_limit = refresh_token_limit

    async def _start_session(self, user: User) -> IssuedTokens:
        issued = self.tokens.issue(user)
        await self.users.add_refresh_token(
            user, issued.refresh_token, self.refresh_token_limit
        )
        return issued

    # ─── Register / Login ────────────────────────────────

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        """Create a 'user'-role account and start its first session."""
        email = normalize_email(email)
        username = username.strip()

        conflicts = await self.users.find_conflicts(email, username)
        if any(existing_email == email for existing_email, _ in conflicts):
            raise DuplicateEmail()
        if conflicts:
            raise DuplicateUsername()

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=ROLE_USER,
            refresh_tokens=[],
            preferences={},
        )
        await self.users.add(user)
        issued = await self._start_session(user)

        logger.info("auth.registered", user_id=str(user.id))
        return AuthResult(user=user, tokens=issued)

    async def login(self, email: str, password: str) -> AuthResult:
        """Email/password → new session.

        Learn: unknown email, deactivated account and wrong password all
        produce the same InvalidCredentials so the response can't be used
        to probe which accounts exist.
        """
        user = await self.users.find_by_email(
            normalize_email(email), include_inactive=True, with_secret=True
        )
        if not user or not user.active or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        issued = await self._start_session(user)
        logger.info("auth.login", user_id=str(user.id))
        return AuthResult(user=user, tokens=issued)

    # ─── Logout ──────────────────────────────────────────

    async def logout(self, user: User, refresh_token: Optional[str] = None) -> None:
        """Revoke one refresh token, or all of them when none is given. Idempotent."""
        if refresh_token:
            await self.users.remove_refresh_token(user, refresh_token)
        else:
            await self.users.clear_refresh_tokens(user)
        logger.info("auth.logout", user_id=str(user.id), all_sessions=not refresh_token)

    # ─── Refresh (rotation + reuse detection) ────────────

    async def refresh(self, refresh_token: Optional[str]) -> AuthResult:
        if not refresh_token:
            raise NoToken("No refresh token provided")

        claims = self.tokens.verify(refresh_token, expected_type=REFRESH)
        user = await self.users.get(self.tokens.subject(claims))
        if not user:
            raise UserGone()

        if refresh_token not in user.refresh_tokens:
            await self.users.clear_refresh_tokens(user)
            logger.warning("auth.refresh_token_reused", user_id=str(user.id))
            raise TokenReused()

        await self.users.remove_refresh_token(user, refresh_token)
        issued = await self._start_session(user)
        return AuthResult(user=user, tokens=issued)

    # ─── Password change ─────────────────────────────────

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> AuthResult:
        """Re-hash, stamp password_changed_at, revoke every session, start a new one."""
        current = await self.users.get(user.id, with_secret=True)
        if not current:
            raise UserGone()
        if not verify_password(current_password, current.password_hash):
            raise WrongCurrentPassword()

        current.password_hash = hash_password(new_password)
        current.password_changed_at = utcnow()
        current.refresh_tokens = []
        await self.users.save(current)

        issued = await self._start_session(current)
        logger.info("auth.password_changed", user_id=str(current.id))
        return AuthResult(user=current, tokens=issued)

    # ─── Access token → user ─────────────────────────────

    async def authenticate(self, access_token: Optional[str]) -> User:
        """Resolve the user behind an access token, rejecting stale tokens."""
        if not access_token:
            raise NoToken()

        claims = self.tokens.verify(access_token, expected_type=ACCESS)
        user = await self.users.get(self.tokens.subject(claims))
        if not user:
            raise UserGone()

        if user.password_changed_after(float(claims["iat"])):
            raise StaleToken()
        return user

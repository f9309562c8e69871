"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15min), carries user id + role
- Refresh token: long-lived (7 days), carries user id only

Both are HMAC-signed with the same secret. Expiry is embedded in the
token and enforced by PyJWT at decode time. `iat` is a float so a token
minted a moment after a password change is distinguishable from one
minted a moment before it; `jti` makes every token unique even when
two are minted in the same instant.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import jwt

from oportal.durations import parse_duration
from oportal.errors import TokenExpired, TokenInvalid

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class IssuedTokens:
    """A freshly issued access/refresh pair and when each one expires."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class TokenService:
    """Issues and verifies signed access/refresh tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: Union[str, timedelta] = "15m",
        refresh_ttl: Union[str, timedelta] = "7d",
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = parse_duration(access_ttl)
        self.refresh_ttl = parse_duration(refresh_ttl)

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
        )

    # ─── Issue ───────────────────────────────────────────

    def issue(self, user) -> IssuedTokens:
        """Create a new access + refresh pair for a user."""
        now = datetime.now(timezone.utc)
        access_expires = now + self.access_ttl
        refresh_expires = now + self.refresh_ttl

        access_token = self._encode(
            {"sub": str(user.id), "role": user.role, "type": ACCESS},
            now,
            access_expires,
        )
        refresh_token = self._encode(
            {"sub": str(user.id), "type": REFRESH},
            now,
            refresh_expires,
        )
        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires,
            refresh_expires_at=refresh_expires,
        )

    def _encode(self, claims: dict, now: datetime, expires: datetime) -> str:
        payload = {
            **claims,
            "iat": now.timestamp(),
            "exp": expires,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    # ─── Verify ──────────────────────────────────────────

    def verify(self, token: str, expected_type: Optional[str] = None) -> dict[str, Any]:
        """Verify and decode a token.

        Returns the claims dict on success.
        Raises TokenExpired or TokenInvalid on failure.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat", "type"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise TokenInvalid()

        if expected_type and claims.get("type") != expected_type:
            raise TokenInvalid(f"Not a {expected_type} token")
        return claims

    @staticmethod
    def subject(claims: dict[str, Any]) -> uuid.UUID:
        """The user id a verified token refers to."""
        try:
            return uuid.UUID(str(claims["sub"]))
        except (KeyError, ValueError):
            raise TokenInvalid()

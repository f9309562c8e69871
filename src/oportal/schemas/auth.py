"""Pydantic schemas for registration, login and token exchange.

Learn: Input schemas do all the shape checking (lengths, patterns,
matching confirmation fields) so the auth service can assume it only
ever sees well-formed values. Reusable rules are Annotated types:
`Email` normalizes and checks an address, `StrongPassword` requires
8+ characters with upper, lower and a digit.
"""

import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator

from oportal.schemas.user import UserRead

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
EMAIL_PATTERN = re.compile(r"^[\w.+-]+@([\w-]+\.)+[\w-]{2,}$")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def _check_password_strength(value: str) -> str:
    if not (
        re.search(r"[a-z]", value)
        and re.search(r"[A-Z]", value)
        and re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter and one number"
        )
    return value


Email = Annotated[str, AfterValidator(_check_email)]
StrongPassword = Annotated[
    str, Field(min_length=8), AfterValidator(_check_password_strength)
]


# ─── Requests ────────────────────────────────────────────

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    email: Email
    password: StrongPassword
    password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Token may also come from the refreshToken cookie, hence optional."""
    refresh_token: Optional[str] = None


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword
    new_password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.new_password_confirm:
            raise ValueError("Passwords do not match")
        return self


# ─── Responses ───────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    access_expires_at: datetime
    refresh_expires_at: datetime


class AuthResponse(TokenResponse):
    user: UserRead


class MessageResponse(BaseModel):
    status: str = "success"
    message: str

"""Domain error taxonomy.

Learn: Services raise these typed errors; the HTTP boundary
(api/errors.py) turns each one into a status code and a JSON body.
Every error carries a machine-readable `code` so clients can branch
on it without parsing messages.

  ValidationError  400   caller-fixable input problems
  AuthError        401   missing/invalid/expired/reused/stale token, bad credentials
  ForbiddenError   403   authenticated but not permitted
  NotFoundError    404
  ConflictError    409   duplicate username/email/unique value
  InternalError    500   unexpected faults — message hidden in production
"""

from typing import Optional


class AppError(Exception):
    """Base class for every error the API reports to callers."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


# ─── 400 ─────────────────────────────────────────────────


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input data"


class InvalidAssociatedUsers(ValidationError):
    code = "invalid_associated_users"
    default_message = "One or more associated users do not exist"


# ─── 401 ─────────────────────────────────────────────────


class AuthError(AppError):
    status_code = 401
    code = "auth_error"
    default_message = "Not authorized. Please log in again."


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Incorrect email or password"


class NoToken(AuthError):
    code = "no_token"
    default_message = "You are not logged in. Please log in to get access."


class TokenInvalid(AuthError):
    code = "token_invalid"
    default_message = "Invalid token. Please log in again."


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Your token has expired. Please log in again."


class TokenReused(AuthError):
    code = "token_reused"
    default_message = "Invalid or already used token, please log in again"


class StaleToken(AuthError):
    code = "stale_token"
    default_message = "User recently changed password. Please log in again."


class UserGone(AuthError):
    code = "user_gone"
    default_message = "The user belonging to this token no longer exists"


class WrongCurrentPassword(AuthError):
    code = "wrong_current_password"
    default_message = "Your current password is incorrect"


# ─── 403 / 404 ───────────────────────────────────────────


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


# ─── 409 ─────────────────────────────────────────────────


class ConflictError(AppError):
    status_code = 409
    code = "duplicate_value"
    default_message = "Duplicate value. Please use another value."


class DuplicateEmail(ConflictError):
    code = "duplicate_email"
    default_message = "This email is already registered"


class DuplicateUsername(ConflictError):
    code = "duplicate_username"
    default_message = "This username is already taken"


# ─── 500 ─────────────────────────────────────────────────


class InternalError(AppError):
    """Marker for unexpected faults. Details are logged, never shown in production."""

    status_code = 500
    code = "internal_error"

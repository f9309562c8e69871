"""Cookie transport for access/refresh tokens.

Learn: Browser clients never see the tokens — both travel in HttpOnly,
SameSite=Strict cookies. The refresh cookie is path-scoped to the
refresh endpoint so the browser only sends it there. Cookie expiry
comes straight from IssuedTokens, i.e. from the same TTL that was
signed into the token.
"""

from starlette.responses import Response

from oportal.auth.tokens import IssuedTokens

ACCESS_COOKIE = "jwt"
REFRESH_COOKIE = "refreshToken"
REFRESH_COOKIE_PATH = "/api/v1/auth/refresh"


def set_token_cookies(response: Response, tokens: IssuedTokens, secure: bool) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        expires=tokens.access_expires_at,
        httponly=True,
        secure=secure,
        samesite="strict",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        expires=tokens.refresh_expires_at,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite="strict",
    )


def clear_token_cookies(response: Response, secure: bool) -> None:
    response.delete_cookie(ACCESS_COOKIE, httponly=True, secure=secure, samesite="strict")
    response.delete_cookie(
        REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=secure,
        samesite="strict",
    )

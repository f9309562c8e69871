"""TokenService — issuing and verifying access/refresh tokens."""

import uuid
from datetime import timedelta
from types import SimpleNamespace

import jwt
import pytest

from oportal.auth.tokens import ACCESS, REFRESH, TokenService
from oportal.errors import TokenExpired, TokenInvalid

SECRET = "unit-test-secret"


@pytest.fixture()
def tokens():
    return TokenService(SECRET, access_ttl="15m", refresh_ttl="7d")


@pytest.fixture()
def user():
    return SimpleNamespace(id=uuid.uuid4(), role="editor")


def test_issue_claims(tokens, user):
    issued = tokens.issue(user)

    access = tokens.verify(issued.access_token, expected_type=ACCESS)
    assert access["sub"] == str(user.id)
    assert access["role"] == "editor"
    assert isinstance(access["iat"], float)

    refresh = tokens.verify(issued.refresh_token, expected_type=REFRESH)
    assert refresh["sub"] == str(user.id)
    assert "role" not in refresh


def test_expiry_matches_configured_ttl(tokens, user):
    issued = tokens.issue(user)
    access = tokens.verify(issued.access_token)
    refresh = tokens.verify(issued.refresh_token)

    assert access["exp"] - access["iat"] == pytest.approx(15 * 60, abs=1)
    assert refresh["exp"] - refresh["iat"] == pytest.approx(7 * 86400, abs=1)
    delta = issued.refresh_expires_at - issued.access_expires_at
    assert delta == timedelta(days=7) - timedelta(minutes=15)


def test_tokens_are_unique_even_when_issued_together(tokens, user):
    first = tokens.issue(user)
    second = tokens.issue(user)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_wrong_type_rejected(tokens, user):
    issued = tokens.issue(user)
    with pytest.raises(TokenInvalid):
        tokens.verify(issued.access_token, expected_type=REFRESH)
    with pytest.raises(TokenInvalid):
        tokens.verify(issued.refresh_token, expected_type=ACCESS)


def test_expired_token(user):
    expired = TokenService(SECRET, access_ttl=timedelta(seconds=-5))
    issued = expired.issue(user)
    with pytest.raises(TokenExpired) as exc:
        expired.verify(issued.access_token)
    assert exc.value.code == "token_expired"


def test_bad_signature_and_garbage(tokens, user):
    other = TokenService("another-secret")
    with pytest.raises(TokenInvalid):
        tokens.verify(other.issue(user).access_token)
    with pytest.raises(TokenInvalid):
        tokens.verify("not.a.jwt")


def test_missing_required_claims(tokens):
    token = jwt.encode({"sub": "x", "exp": 9999999999}, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        tokens.verify(token)


def test_subject(tokens, user):
    claims = tokens.verify(tokens.issue(user).access_token)
    assert TokenService.subject(claims) == user.id
    with pytest.raises(TokenInvalid):
        TokenService.subject({"sub": "not-a-uuid"})

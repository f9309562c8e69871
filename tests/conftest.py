"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Environment is pinned *before* oportal is imported, because the
   settings singleton and the module-level engine are built at import.
2. Each test gets its own in-memory SQLite engine (StaticPool, so every
   session shares the one connection that holds the schema) and the
   tables are created from the models.
3. The app's get_db is overridden to hand out sessions from that
   engine. Auth is NOT overridden: every request runs the real
   token pipeline, so tests register and log in like a client would.

This gives fast, isolated tests without any cross-test pollution.
"""

import os

os.environ.setdefault("OPORTAL_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPORTAL_BCRYPT_ROUNDS", "4")
os.environ.setdefault("OPORTAL_ENVIRONMENT", "development")

import uuid  # noqa: E402
from typing import Optional  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from oportal.cli.main import grant_role  # noqa: E402
from oportal.db.engine import build_engine, get_db, init_models  # noqa: E402
from oportal.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "Passw0rd!"


@pytest_asyncio.fixture()
async def engine():
    test_engine = build_engine(TEST_DB_URL)
    await init_models(test_engine)
    try:
        yield test_engine
    finally:
        await test_engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client running the real app against the per-test database.

    Learn: raise_app_exceptions=False lets tests observe the 500 JSON
    body for unhandled errors instead of the exception bubbling out of
    the transport.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Helpers ─────────────────────────────────────────────


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(
    client: AsyncClient,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: str = PASSWORD,
) -> dict:
    """Register a user and return the auth response body.

    Cookies set by the response are dropped so that later requests in
    the test authenticate only with what they pass explicitly.
    """
    username = username or f"u_{uuid.uuid4().hex[:10]}"
    email = email or f"{username}@example.com"
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": email,
            "password": password,
            "password_confirm": password,
        },
    )
    assert r.status_code == 201, r.text
    client.cookies.clear()
    return r.json()


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
    r = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return r.json()


async def register_with_role(client: AsyncClient, session_factory, role: str) -> dict:
    """Register, grant `role` via the CLI helper, then log in again.

    The fresh login matters: the access token carries the role it was
    minted with.
    """
    account = await register(client)
    email = account["user"]["email"]
    assert await grant_role(session_factory, email, role) == "user"
    return await login(client, email)

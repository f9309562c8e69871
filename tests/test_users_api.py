"""User API tests — profile, preferences, deactivation, admin listing."""

import uuid

import pytest
import pytest_asyncio

from conftest import PASSWORD, bearer, register, register_with_role


@pytest_asyncio.fixture()
async def alice(client):
    return await register(client, username="alice")


@pytest_asyncio.fixture()
async def bob(client):
    return await register(client, username="bob")


@pytest_asyncio.fixture()
async def admin(client, session_factory):
    return await register_with_role(client, session_factory, "admin")


# ═══════════════════════════════════════════════════════════
# Me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_me(client, alice):
    r = await client.get("/api/v1/users/me", headers=bearer(alice["access_token"]))
    assert r.status_code == 200
    assert r.json()["username"] == "alice"
    assert r.json()["preferences"] == {}


@pytest.mark.asyncio
async def test_update_username(client, alice):
    r = await client.patch(
        "/api/v1/users/me",
        json={"username": "alice_2"},
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["username"] == "alice_2"


@pytest.mark.asyncio
async def test_update_username_taken(client, alice, bob):
    r = await client.patch(
        "/api/v1/users/me",
        json={"username": "bob"},
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_username"


@pytest.mark.asyncio
async def test_update_me_nothing_to_change(client, alice):
    r = await client.patch(
        "/api/v1/users/me", json={}, headers=bearer(alice["access_token"])
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_update_me_cannot_change_role(client, alice):
    r = await client.patch(
        "/api/v1/users/me",
        json={"username": "alice_3", "role": "admin"},
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["role"] == "user"


@pytest.mark.asyncio
async def test_preferences_are_merged(client, alice):
    headers = bearer(alice["access_token"])
    r = await client.patch(
        "/api/v1/users/me/preferences", json={"theme": "dark"}, headers=headers
    )
    assert r.status_code == 200

    r = await client.patch(
        "/api/v1/users/me/preferences", json={"lang": "es"}, headers=headers
    )
    assert r.json()["preferences"] == {"theme": "dark", "lang": "es"}

    r = await client.patch("/api/v1/users/me/preferences", json={}, headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_delete_me_deactivates(client, alice):
    headers = bearer(alice["access_token"])
    r = await client.delete("/api/v1/users/me", headers=headers)
    assert r.status_code == 204

    r = await client.get("/api/v1/users/me", headers=headers)
    assert r.status_code == 401
    assert r.json()["code"] == "user_gone"

    r = await client.post(
        "/api/v1/auth/login",
        json={"email": alice["user"]["email"], "password": PASSWORD},
    )
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_credentials"

    r = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": alice["refresh_token"]}
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# By id / admin
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_user_self_or_admin(client, alice, bob, admin):
    url = f"/api/v1/users/{alice['user']['id']}"

    r = await client.get(url, headers=bearer(alice["access_token"]))
    assert r.status_code == 200

    r = await client.get(url, headers=bearer(bob["access_token"]))
    assert r.status_code == 403

    r = await client.get(url, headers=bearer(admin["access_token"]))
    assert r.status_code == 200

    r = await client.get(
        f"/api/v1/users/{uuid.uuid4()}", headers=bearer(admin["access_token"])
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_users_admin_only(client, alice, bob, admin):
    r = await client.get("/api/v1/users", headers=bearer(alice["access_token"]))
    assert r.status_code == 403

    r = await client.get("/api/v1/users", headers=bearer(admin["access_token"]))
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 3
    assert page["total_pages"] == 1
    assert {u["username"] for u in page["data"]} >= {"alice", "bob"}

    r = await client.get(
        "/api/v1/users?search=ali", headers=bearer(admin["access_token"])
    )
    assert [u["username"] for u in r.json()["data"]] == ["alice"]

    r = await client.get(
        "/api/v1/users?role=admin", headers=bearer(admin["access_token"])
    )
    assert [u["id"] for u in r.json()["data"]] == [admin["user"]["id"]]


@pytest.mark.asyncio
async def test_admin_deactivates_user(client, alice, bob, admin):
    r = await client.delete(
        f"/api/v1/users/{alice['user']['id']}", headers=bearer(bob["access_token"])
    )
    assert r.status_code == 403

    r = await client.delete(
        f"/api/v1/users/{alice['user']['id']}", headers=bearer(admin["access_token"])
    )
    assert r.status_code == 204

    r = await client.get("/api/v1/users", headers=bearer(admin["access_token"]))
    assert "alice" not in {u["username"] for u in r.json()["data"]}

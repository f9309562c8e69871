"""Content API tests.

Learn: Tests cover:
1. Create / read / update / delete with ownership and role rules
2. Versioning — only a real title/body change snapshots and bumps
3. Personalized visibility, for single reads and for listings
4. Filters, sorting and the pagination envelope
"""

import uuid

import pytest
import pytest_asyncio

from conftest import bearer, register, register_with_role


async def _create(client, account, **overrides):
    body = {"title": "Hello", "body": "World", **overrides}
    r = await client.post(
        "/api/v1/content", json=body, headers=bearer(account["access_token"])
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest_asyncio.fixture()
async def alice(client):
    return await register(client, username="alice")


@pytest_asyncio.fixture()
async def bob(client):
    return await register(client, username="bob")


@pytest_asyncio.fixture()
async def carol(client):
    return await register(client, username="carol")


@pytest_asyncio.fixture()
async def admin(client, session_factory):
    return await register_with_role(client, session_factory, "admin")


@pytest_asyncio.fixture()
async def editor(client, session_factory):
    return await register_with_role(client, session_factory, "editor")


# ═══════════════════════════════════════════════════════════
# Create / Read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_content(client, alice):
    content = await _create(
        client,
        alice,
        tags=["news", "news", "tech"],
        metadata={"lang": "en"},
        status="published",
    )
    assert content["version"] == 1
    assert content["previous_versions"] == []
    assert content["author"] == {"id": alice["user"]["id"], "username": "alice"}
    assert content["tags"] == ["news", "tech"]
    assert content["metadata"] == {"lang": "en"}
    assert content["status"] == "published"
    assert content["is_personalized"] is False


@pytest.mark.asyncio
async def test_create_requires_auth(client):
    r = await client.post("/api/v1/content", json={"title": "t", "body": "b"})
    assert r.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"title": "", "body": "b"},
        {"title": "x" * 101, "body": "b"},
        {"title": "t"},
        {"title": "t", "body": "b", "status": "deleted"},
    ],
)
async def test_create_validation(client, alice, body):
    r = await client.post(
        "/api/v1/content", json=body, headers=bearer(alice["access_token"])
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_create_with_unknown_associated_user(client, alice):
    r = await client.post(
        "/api/v1/content",
        json={
            "title": "t",
            "body": "b",
            "is_personalized": True,
            "associated_users": [str(uuid.uuid4())],
        },
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_associated_users"


@pytest.mark.asyncio
async def test_unknown_associated_user_on_public_content(client, alice, admin):
    """Associations are checked even when the record is not personalized."""
    r = await client.post(
        "/api/v1/content",
        json={
            "title": "t",
            "body": "b",
            "is_personalized": False,
            "associated_users": [str(uuid.uuid4())],
        },
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_associated_users"

    content = await _create(client, alice)
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"associated_users": [str(uuid.uuid4())]},
        headers=bearer(admin["access_token"]),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_associated_users"


@pytest.mark.asyncio
async def test_get_missing_content(client, alice):
    r = await client.get(
        f"/api/v1/content/{uuid.uuid4()}", headers=bearer(alice["access_token"])
    )
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


# ═══════════════════════════════════════════════════════════
# Versioning
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_metadata_update_keeps_version(client, alice):
    content = await _create(client, alice)
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"metadata": {"views": 3}, "tags": ["a"], "status": "published"},
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 200
    updated = r.json()
    assert updated["version"] == 1
    assert updated["previous_versions"] == []
    assert updated["metadata"] == {"views": 3}
    assert updated["tags"] == ["a"]


@pytest.mark.asyncio
async def test_title_update_snapshots_previous_version(client, alice):
    content = await _create(client, alice, title="First")
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"title": "Second"},
        headers=bearer(alice["access_token"]),
    )
    updated = r.json()
    assert updated["version"] == 2
    assert updated["title"] == "Second"
    assert len(updated["previous_versions"]) == 1
    snapshot = updated["previous_versions"][0]
    assert snapshot["version"] == 1
    assert snapshot["title"] == "First"
    assert snapshot["body"] == "World"
    assert snapshot["updated_by_id"] == alice["user"]["id"]

    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"body": "Changed"},
        headers=bearer(alice["access_token"]),
    )
    again = r.json()
    assert again["version"] == 3
    assert [v["version"] for v in again["previous_versions"]] == [1, 2]


@pytest.mark.asyncio
async def test_unchanged_title_does_not_bump(client, alice):
    content = await _create(client, alice, title="Same")
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"title": "Same"},
        headers=bearer(alice["access_token"]),
    )
    assert r.json()["version"] == 1


# ═══════════════════════════════════════════════════════════
# Ownership & roles
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_plain_user_cannot_update_others_content(client, alice, bob):
    content = await _create(client, alice)
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"title": "Mine now"},
        headers=bearer(bob["access_token"]),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_editor_updates_but_cannot_delete(client, alice, editor):
    content = await _create(client, alice)
    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json={"title": "Edited"},
        headers=bearer(editor["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["updated_by_id"] == editor["user"]["id"]

    r = await client.delete(
        f"/api/v1/content/{content['id']}", headers=bearer(editor["access_token"])
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_only_admin_changes_personalization(client, alice, bob, editor, admin):
    content = await _create(client, alice)
    change = {"is_personalized": True, "associated_users": [bob["user"]["id"]]}

    for account in (alice, editor):
        r = await client.patch(
            f"/api/v1/content/{content['id']}",
            json=change,
            headers=bearer(account["access_token"]),
        )
        assert r.status_code == 403

    r = await client.patch(
        f"/api/v1/content/{content['id']}",
        json=change,
        headers=bearer(admin["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["associated_users"] == [bob["user"]["id"]]


@pytest.mark.asyncio
async def test_author_deletes(client, alice):
    content = await _create(client, alice, tags=["x"])
    headers = bearer(alice["access_token"])

    r = await client.delete(f"/api/v1/content/{content['id']}", headers=headers)
    assert r.status_code == 204

    r = await client.get(f"/api/v1/content/{content['id']}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_deletes_others_content(client, alice, admin):
    content = await _create(client, alice)
    r = await client.delete(
        f"/api/v1/content/{content['id']}", headers=bearer(admin["access_token"])
    )
    assert r.status_code == 204


# ═══════════════════════════════════════════════════════════
# Personalized visibility
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def private_note(client, alice, bob):
    return await _create(
        client,
        alice,
        title="For Bob",
        is_personalized=True,
        associated_users=[bob["user"]["id"]],
    )


@pytest.mark.asyncio
async def test_personalized_read_matrix(client, private_note, alice, bob, carol, admin):
    url = f"/api/v1/content/{private_note['id']}"
    for account in (alice, bob, admin):
        r = await client.get(url, headers=bearer(account["access_token"]))
        assert r.status_code == 200

    r = await client.get(url, headers=bearer(carol["access_token"]))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_personalized_listing_visibility(
    client, private_note, alice, bob, carol, admin
):
    await _create(client, carol, title="Public by Carol")

    async def titles(account):
        r = await client.get("/api/v1/content", headers=bearer(account["access_token"]))
        assert r.status_code == 200
        return {item["title"] for item in r.json()["data"]}

    assert await titles(alice) == {"For Bob", "Public by Carol"}
    assert await titles(bob) == {"For Bob", "Public by Carol"}
    assert await titles(carol) == {"Public by Carol"}
    # admins bypass the visibility clause in listings as well
    assert await titles(admin) == {"For Bob", "Public by Carol"}


@pytest.mark.asyncio
async def test_personalized_filter(client, private_note, alice):
    await _create(client, alice, title="Public")
    headers = bearer(alice["access_token"])

    r = await client.get("/api/v1/content?personalized=true", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == ["For Bob"]

    r = await client.get("/api/v1/content?personalized=false", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == ["Public"]


# ═══════════════════════════════════════════════════════════
# Listing: pagination, filters, sorting
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["limit=0", "limit=101", "page=0", "page=-1"])
async def test_invalid_pagination(client, alice, query):
    r = await client.get(
        f"/api/v1/content?{query}", headers=bearer(alice["access_token"])
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_pagination"


@pytest.mark.asyncio
async def test_pagination_envelope(client, alice):
    for i in range(25):
        await _create(client, alice, title=f"Post {i:02d}")
    headers = bearer(alice["access_token"])

    r = await client.get("/api/v1/content?page=1&limit=10", headers=headers)
    page = r.json()
    assert page["total"] == 25
    assert page["total_pages"] == 3
    assert page["current_page"] == 1
    assert page["results"] == 10

    r = await client.get("/api/v1/content?page=3&limit=10", headers=headers)
    assert r.json()["results"] == 5

    r = await client.get("/api/v1/content?page=4&limit=10", headers=headers)
    assert r.json()["results"] == 0
    assert r.json()["data"] == []


@pytest.mark.asyncio
async def test_filters_and_sort(client, alice):
    headers = bearer(alice["access_token"])
    await _create(client, alice, title="Banana bread", body="Bake it", tags=["food"])
    await _create(client, alice, title="Apple pie", body="Bake slowly", tags=["food", "dessert"])
    await _create(
        client, alice, title="Cherry news", body="Markets", tags=["news"], status="published"
    )

    r = await client.get("/api/v1/content?tags=dessert,news&sort=title", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == ["Apple pie", "Cherry news"]

    r = await client.get("/api/v1/content?search=BAKE%20slow", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == ["Apple pie"]

    r = await client.get("/api/v1/content?status=published", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == ["Cherry news"]

    r = await client.get("/api/v1/content?sort=-title", headers=headers)
    assert [c["title"] for c in r.json()["data"]] == [
        "Cherry news",
        "Banana bread",
        "Apple pie",
    ]


@pytest.mark.asyncio
async def test_unknown_sort_field(client, alice):
    r = await client.get(
        "/api/v1/content?sort=password_hash", headers=bearer(alice["access_token"])
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_fields_narrow_listed_records(client, alice):
    await _create(client, alice, title="Only title", status="published")
    headers = bearer(alice["access_token"])

    r = await client.get("/api/v1/content?fields=title,status", headers=headers)
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 1
    assert page["current_page"] == 1
    (record,) = page["data"]
    assert set(record) == {"id", "title", "status"}
    assert record["title"] == "Only title"

    r = await client.get("/api/v1/content/me?fields=metadata", headers=headers)
    assert set(r.json()["data"][0]) == {"id", "metadata"}

    r = await client.get(
        f"/api/v1/content/user/{alice['user']['id']}?fields=version", headers=headers
    )
    assert r.json()["data"][0] == {"id": r.json()["data"][0]["id"], "version": 1}

    r = await client.get("/api/v1/content", headers=headers)
    assert "previous_versions" in r.json()["data"][0]


@pytest.mark.asyncio
async def test_unknown_selected_field(client, alice):
    r = await client.get(
        "/api/v1/content?fields=title,password_hash",
        headers=bearer(alice["access_token"]),
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


# ═══════════════════════════════════════════════════════════
# Per-author listings
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_my_content(client, alice, bob):
    await _create(client, alice, title="Alice 1")
    await _create(client, bob, title="Bob 1")

    r = await client.get("/api/v1/content/me", headers=bearer(alice["access_token"]))
    assert r.status_code == 200
    assert [c["title"] for c in r.json()["data"]] == ["Alice 1"]


@pytest.mark.asyncio
async def test_user_content_self_or_admin(client, alice, bob, admin):
    await _create(client, alice, title="Alice 1")
    url = f"/api/v1/content/user/{alice['user']['id']}"

    r = await client.get(url, headers=bearer(bob["access_token"]))
    assert r.status_code == 403

    r = await client.get(url, headers=bearer(admin["access_token"]))
    assert r.status_code == 200
    assert r.json()["total"] == 1


@pytest.mark.asyncio
async def test_user_content_unknown_or_malformed_user(client, admin):
    headers = bearer(admin["access_token"])
    r = await client.get(f"/api/v1/content/user/{uuid.uuid4()}", headers=headers)
    assert r.status_code == 404

    r = await client.get("/api/v1/content/user/not-a-uuid", headers=headers)
    assert r.status_code == 400

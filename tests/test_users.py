"""
User endpoint tests — covers creating, listing, updating, deleting and
searching users, plus the metrics endpoint.

The metrics endpoint is tested here because it aggregates across users,
authors, news and comments and is simpler to exercise once the other
resources can be created through the API.
"""
import pytest
from httpx import AsyncClient


async def _create_user(client: AsyncClient, username: str, **extra) -> dict:
    resp = await client.post("/api/v1/users", json={
        "username": username,
        "email": f"{username}@example.com",
        **extra,
    })
    assert resp.status_code == 201
    return resp.json()


# ---------------------------------------------------------------------------
# Create user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    """Creating a user with all fields returns 201 and all provided data."""
    resp = await async_client.post("/api/v1/users", json={
        "username": "newuser",
        "email": "newuser@example.com",
        "first_name": "New",
        "last_name": "User",
    })
    assert resp.status_code == 201
    user = resp.json()
    assert user["username"] == "newuser"
    assert user["email"] == "newuser@example.com"
    assert user["first_name"] == "New"
    assert user["last_name"] == "User"
    assert "id" in user
    assert "created_at" in user


@pytest.mark.asyncio
async def test_create_user_minimal_fields(async_client: AsyncClient):
    """Creating a user with only required fields (username + email) returns 201."""
    user = await _create_user(async_client, "minimal")
    assert user["first_name"] is None
    assert user["last_name"] is None


@pytest.mark.asyncio
async def test_create_user_missing_email(async_client: AsyncClient):
    """Omitting the required 'email' field returns 422 Unprocessable Entity."""
    resp = await async_client.post("/api/v1/users", json={"username": "noemail"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_user_invalid_email(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/users", json={
        "username": "bademail",
        "email": "not-an-email",
    })
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# List / get users
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_users_empty(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users")
    assert resp.status_code == 200
    data = resp.json()
    assert data["items"] == []
    assert data["total"] == 0
    assert data["pages"] == 0


@pytest.mark.asyncio
async def test_list_users_paginated(async_client: AsyncClient):
    for i in range(5):
        await _create_user(async_client, f"listuser{i}")

    resp = await async_client.get("/api/v1/users", params={"page": 2, "page_size": 2, "sort_by": "username", "sort_order": "asc"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 5
    assert data["pages"] == 3
    assert [u["username"] for u in data["items"]] == ["listuser2", "listuser3"]


@pytest.mark.asyncio
async def test_get_user(async_client: AsyncClient):
    created = await _create_user(async_client, "detailuser")
    resp = await async_client.get(f"/api/v1/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["username"] == "detailuser"


@pytest.mark.asyncio
async def test_user_not_found(async_client: AsyncClient):
    """Fetching a non-existent user ID returns 404."""
    resp = await async_client.get("/api/v1/users/99999")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_user_partial(async_client: AsyncClient):
    created = await _create_user(async_client, "updater", first_name="Old")
    resp = await async_client.put(f"/api/v1/users/{created['id']}", json={"first_name": "New"})
    assert resp.status_code == 200
    user = resp.json()
    assert user["first_name"] == "New"
    assert user["username"] == "updater"


@pytest.mark.asyncio
async def test_update_missing_user(async_client: AsyncClient):
    resp = await async_client.put("/api/v1/users/99999", json={"first_name": "Ghost"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_user(async_client: AsyncClient):
    created = await _create_user(async_client, "doomed")
    resp = await async_client.delete(f"/api/v1/users/{created['id']}")
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/users/{created['id']}")).status_code == 404
    assert (await async_client.delete(f"/api/v1/users/{created['id']}")).status_code == 404


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_users_by_first_and_last_name(async_client: AsyncClient):
    await _create_user(async_client, "jdoe", first_name="John", last_name="Doe")
    await _create_user(async_client, "jsmith", first_name="Jane", last_name="Smith")
    await _create_user(async_client, "bdoe", first_name="Bob", last_name="Doe")

    resp = await async_client.get("/api/v1/users/search", params={"last_name": "doe"})
    assert resp.status_code == 200
    assert [u["username"] for u in resp.json()] == ["bdoe", "jdoe"]

    resp = await async_client.get("/api/v1/users/search", params={"first_name": "JA"})
    assert [u["username"] for u in resp.json()] == ["jsmith"]


@pytest.mark.asyncio
async def test_search_users_requires_a_term(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users/search")
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Metrics endpoint
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_metrics_endpoint_empty(async_client: AsyncClient):
    """Metrics endpoint returns zero counts on an empty database."""
    resp = await async_client.get("/api/v1/metrics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_users"] == 0
    assert data["total_authors"] == 0
    assert data["total_categories"] == 0
    assert data["total_news"] == 0
    assert data["total_comments"] == 0
    assert data["avg_comments_per_news"] == 0.0
    assert "cache_info" in data


@pytest.mark.asyncio
async def test_metrics_endpoint(async_client: AsyncClient):
    """Metrics endpoint returns accurate counts for created entities."""
    user = await _create_user(async_client, "metricuser")
    author = (await async_client.post("/api/v1/authors", json={"name": "Metric Author"})).json()
    category = (await async_client.post("/api/v1/categories", json={"name": "Metrics"})).json()

    news_ids = []
    for i in range(2):
        resp = await async_client.post("/api/v1/news", json={
            "title": f"Metric News {i}",
            "content": f"Content {i}",
            "published": True,
            "author_id": author["id"],
            "category_id": category["id"],
        })
        news_ids.append(resp.json()["id"])

    for i in range(3):
        resp = await async_client.post("/api/v1/comments", json={
            "content": f"Metric comment {i}",
            "user_id": user["id"],
            "news_id": news_ids[0],
        })
        assert resp.status_code == 201

    resp = await async_client.get("/api/v1/metrics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_users"] == 1
    assert data["total_authors"] == 1
    assert data["total_categories"] == 1
    assert data["total_news"] == 2
    assert data["total_comments"] == 3
    # avg = 3 comments / 2 news = 1.5
    assert data["avg_comments_per_news"] == 1.5


@pytest.mark.asyncio
async def test_metrics_cache_info_structure(async_client: AsyncClient):
    """The cache_info field in metrics contains hits, misses, and hit_rate."""
    resp = await async_client.get("/api/v1/metrics")
    cache_info = resp.json()["cache_info"]
    assert "hits" in cache_info
    assert "misses" in cache_info
    assert "hit_rate" in cache_info

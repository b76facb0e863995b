"""
Category endpoint tests — CRUD, name search, the published-news filter and
the news-count ranking.
"""
import pytest
from httpx import AsyncClient


async def _create_category(client: AsyncClient, name: str, description: str | None = None) -> dict:
    resp = await client.post("/api/v1/categories", json={"name": name, "description": description})
    assert resp.status_code == 201
    return resp.json()


async def _add_news(client: AsyncClient, author_id: int, category_id: int, count: int, published: bool = True):
    for i in range(count):
        resp = await client.post("/api/v1/news", json={
            "title": f"Story {category_id}-{i}",
            "content": "Body",
            "published": published,
            "author_id": author_id,
            "category_id": category_id,
        })
        assert resp.status_code == 201


@pytest.mark.asyncio
async def test_create_and_get_category(async_client: AsyncClient):
    category = await _create_category(async_client, "Technology", "Gadgets and software")
    assert category["name"] == "Technology"

    resp = await async_client.get(f"/api/v1/categories/{category['id']}")
    assert resp.status_code == 200
    assert resp.json()["description"] == "Gadgets and software"


@pytest.mark.asyncio
async def test_duplicate_category_returns_409(async_client: AsyncClient):
    await _create_category(async_client, "Sports")
    resp = await async_client.post("/api/v1/categories", json={"name": "Sports"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_update_and_delete_category(async_client: AsyncClient):
    category = await _create_category(async_client, "Culture")

    resp = await async_client.put(f"/api/v1/categories/{category['id']}", json={"description": "Arts"})
    assert resp.status_code == 200
    assert resp.json()["description"] == "Arts"

    resp = await async_client.delete(f"/api/v1/categories/{category['id']}")
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/categories/{category['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_category_not_found(async_client: AsyncClient):
    assert (await async_client.get("/api/v1/categories/99999")).status_code == 404
    assert (await async_client.put("/api/v1/categories/99999", json={"description": "x"})).status_code == 404
    assert (await async_client.delete("/api/v1/categories/99999")).status_code == 404


@pytest.mark.asyncio
async def test_list_and_search_categories(async_client: AsyncClient):
    for name in ("Business", "Business Tech", "Health"):
        await _create_category(async_client, name)

    resp = await async_client.get("/api/v1/categories")
    assert resp.json()["total"] == 3

    resp = await async_client.get("/api/v1/categories/search", params={"name": "busi"})
    assert [c["name"] for c in resp.json()] == ["Business", "Business Tech"]


@pytest.mark.asyncio
async def test_categories_with_published_news(async_client: AsyncClient):
    author = (await async_client.post("/api/v1/authors", json={"name": "Desk Writer"})).json()
    live = await _create_category(async_client, "Live")
    drafts = await _create_category(async_client, "Drafts")
    await _create_category(async_client, "Empty")
    await _add_news(async_client, author["id"], live["id"], 1)
    await _add_news(async_client, author["id"], drafts["id"], 2, published=False)

    resp = await async_client.get("/api/v1/categories/with-published-news")
    assert [c["name"] for c in resp.json()] == ["Live"]


@pytest.mark.asyncio
async def test_categories_ordered_by_news_count(async_client: AsyncClient):
    author = (await async_client.post("/api/v1/authors", json={"name": "Desk Writer"})).json()
    few = await _create_category(async_client, "Few")
    many = await _create_category(async_client, "Many")
    await _create_category(async_client, "None")
    await _add_news(async_client, author["id"], few["id"], 1)
    await _add_news(async_client, author["id"], many["id"], 3)

    resp = await async_client.get("/api/v1/categories/by-news-count")
    assert resp.status_code == 200
    ranking = [(c["name"], c["news_count"]) for c in resp.json()]
    assert ranking == [("Many", 3), ("Few", 1), ("None", 0)]

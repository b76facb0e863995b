"""
Cache-aside behaviour of the news reads, using an in-memory stand-in for
the ``redis.asyncio`` client.
"""
import fnmatch

import pytest
from httpx import AsyncClient

from app.cache import cache, news_detail_key


class InMemoryRedis:
    """The handful of ``redis.asyncio.Redis`` calls CacheManager makes."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def aclose(self):
        pass


@pytest.fixture
def redis_store(async_client, monkeypatch) -> InMemoryRedis:
    fake = InMemoryRedis()
    monkeypatch.setattr(cache, "_redis", fake)
    monkeypatch.setattr(cache, "_hits", 0)
    monkeypatch.setattr(cache, "_misses", 0)
    return fake


async def _publish(client: AsyncClient, title: str) -> dict:
    author = (await client.post("/api/v1/authors", json={"name": "Cache Author"})).json()
    category = (await client.post("/api/v1/categories", json={"name": f"Cache {title}"})).json()
    resp = await client.post("/api/v1/news", json={
        "title": title, "content": "Body", "published": True,
        "author_id": author["id"], "category_id": category["id"],
    })
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_feed_served_from_cache_on_second_read(async_client: AsyncClient, redis_store):
    await _publish(async_client, "Cached")

    first = await async_client.get("/api/v1/news")
    second = await async_client.get("/api/v1/news")

    assert first.json() == second.json()
    assert cache.stats["hits"] == 1
    assert cache.stats["misses"] == 1
    assert int(second.headers["x-query-count"]) == 0


@pytest.mark.asyncio
async def test_news_write_invalidates_feed(async_client: AsyncClient, redis_store):
    await _publish(async_client, "First")
    await async_client.get("/api/v1/news")
    assert any(key.startswith("news:list") for key in redis_store.store)

    await _publish(async_client, "Second")

    assert not any(key.startswith("news:list") for key in redis_store.store)
    titles = [n["title"] for n in (await async_client.get("/api/v1/news")).json()["items"]]
    assert sorted(titles) == ["First", "Second"]


@pytest.mark.asyncio
async def test_detail_cache_keeps_view_count_current(async_client: AsyncClient, redis_store):
    news = await _publish(async_client, "Counted")

    first = (await async_client.get(f"/api/v1/news/{news['id']}")).json()
    assert news_detail_key(news["id"]) in redis_store.store
    second = (await async_client.get(f"/api/v1/news/{news['id']}")).json()

    assert second["view_count"] == first["view_count"] + 1
    assert cache.stats["hits"] == 1


@pytest.mark.asyncio
async def test_author_rename_invalidates_feed(async_client: AsyncClient, redis_store):
    news = await _publish(async_client, "Byline")
    await async_client.get("/api/v1/news")

    resp = await async_client.put(f"/api/v1/authors/{news['author_id']}", json={"name": "Renamed Author"})
    assert resp.status_code == 200

    feed = (await async_client.get("/api/v1/news")).json()
    assert feed["items"][0]["author_name"] == "Renamed Author"

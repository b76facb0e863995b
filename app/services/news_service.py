"""
News service — business logic for the News aggregate.

Design notes
------------
- The published list and the detail view go through the cache-aside
  pattern (Redis, falling back to the DB).  Cache keys encode every
  dimension that affects the result.
- ``joinedload`` is used for the two many-to-one references (author,
  category) so a page of news costs one SELECT plus the COUNT.
- The detail read increments ``view_count`` with an UPDATE on every call,
  cache hit or not, so the counter never lags behind the cache.
- Functions flush but do not commit; the transaction boundary is owned by
  the ``get_db`` dependency.
"""
import logging
from datetime import timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.cache import cache, news_detail_key, news_list_key
from app.config import settings
from app.exceptions import ResourceNotFoundError
from app.models import Author, Category, News, utcnow
from app.schemas import NewsCreate, NewsUpdate, PaginatedResponse
from app.services.pagination import order_by_clause, paginate

logger = logging.getLogger(__name__)

# Columns that are safe to sort by; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"created_at", "published_at", "view_count", "title"}
)

_REFERENCES = (joinedload(News.author), joinedload(News.category))


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _news_to_dict(news: News) -> dict:
    """Serialise a News ORM instance to a plain dict (list view)."""
    return {
        "id": news.id,
        "title": news.title,
        "summary": news.summary,
        "view_count": news.view_count,
        "published": news.published,
        "published_at": news.published_at.isoformat() if news.published_at else None,
        "created_at": news.created_at.isoformat() if news.created_at else None,
        "author_id": news.author_id,
        "author_name": news.author.name if news.author else None,
        "category_id": news.category_id,
        "category_name": news.category.name if news.category else None,
    }


def _news_detail_to_dict(news: News) -> dict:
    data = _news_to_dict(news)
    data["content"] = news.content
    return data


async def _load_news(db: AsyncSession, news_id: int) -> News | None:
    result = await db.execute(select(News).where(News.id == news_id).options(*_REFERENCES))
    return result.unique().scalar_one_or_none()


async def _reload(db: AsyncSession, news: News) -> News:
    """Re-read *news* with author and category joined after a write."""
    news_id = news.id
    db.expunge(news)
    return await _load_news(db, news_id)


async def _check_references(db: AsyncSession, author_id: int | None, category_id: int | None) -> None:
    if author_id is not None and await db.get(Author, author_id) is None:
        raise ResourceNotFoundError("Author", author_id)
    if category_id is not None and await db.get(Category, category_id) is None:
        raise ResourceNotFoundError("Category", category_id)


async def _list(
    db: AsyncSession,
    stmt,
    page: int,
    page_size: int,
    sort_by: str,
    sort_order: str,
) -> PaginatedResponse:
    stmt = stmt.order_by(order_by_clause(News, sort_by, sort_order, _SORTABLE_COLUMNS), News.id)
    return await paginate(db, stmt, _news_to_dict, page, page_size, options=_REFERENCES)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_published_news(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "published_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """Paginated published news, cached for ``CACHE_TTL_LIST`` seconds."""
    cache_key = news_list_key(page, page_size, sort_by, sort_order)
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    stmt = select(News).where(News.published.is_(True))
    response = await _list(db, stmt, page, page_size, sort_by, sort_order)
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_all_news(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """Every article, drafts included (editorial view, never cached)."""
    return await _list(db, select(News), page, page_size, sort_by, sort_order)


async def get_news(db: AsyncSession, news_id: int) -> dict | None:
    """
    Return the detail dict for *news_id*, incrementing its view counter.

    Returns None when the article does not exist.
    """
    bumped = await db.execute(
        update(News)
        .where(News.id == news_id)
        .values(view_count=News.view_count + 1)
        .returning(News.view_count)
    )
    view_count = bumped.scalar_one_or_none()
    if view_count is None:
        return None

    cache_key = news_detail_key(news_id)
    cached = await cache.get(cache_key)
    if cached:
        cached["view_count"] = view_count
        return cached

    news = await _load_news(db, news_id)
    if news is None:
        return None
    data = _news_detail_to_dict(news)
    data["view_count"] = view_count
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_DETAIL)
    return data


async def search_news(
    db: AsyncSession,
    keyword: str,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "published_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    """Case-insensitive keyword match over title, content and summary of published news."""
    stmt = select(News).where(
        News.published.is_(True),
        or_(
            News.title.icontains(keyword, autoescape=True),
            News.content.icontains(keyword, autoescape=True),
            News.summary.icontains(keyword, autoescape=True),
        ),
    )
    return await _list(db, stmt, page, page_size, sort_by, sort_order)


async def get_news_by_author(
    db: AsyncSession, author_id: int, page: int = 1, page_size: int = 20,
    sort_by: str = "created_at", sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(News).where(News.author_id == author_id)
    return await _list(db, stmt, page, page_size, sort_by, sort_order)


async def get_news_by_category(
    db: AsyncSession, category_id: int, page: int = 1, page_size: int = 20,
    sort_by: str = "created_at", sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(News).where(News.category_id == category_id)
    return await _list(db, stmt, page, page_size, sort_by, sort_order)


async def get_top_news(db: AsyncSession, page: int = 1, page_size: int = 20) -> PaginatedResponse:
    stmt = select(News).where(News.published.is_(True))
    return await _list(db, stmt, page, page_size, "view_count", "desc")


async def get_recent_news(
    db: AsyncSession, days: int = 7, page: int = 1, page_size: int = 20
) -> PaginatedResponse:
    since = utcnow() - timedelta(days=days)
    stmt = select(News).where(News.published.is_(True), News.published_at >= since)
    return await _list(db, stmt, page, page_size, "published_at", "desc")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_news(db: AsyncSession, data: NewsCreate) -> dict:
    """
    Create an article and return its detail dict.

    Raises ``ResourceNotFoundError`` when the author or category is missing.
    """
    await _check_references(db, data.author_id, data.category_id)

    news = News(**data.model_dump())
    if data.published:
        news.published_at = utcnow()

    db.add(news)
    await db.flush()
    logger.info("Created news %s (%r)", news.id, news.title)

    await cache.invalidate_news()
    return _news_detail_to_dict(await _reload(db, news))


async def update_news(db: AsyncSession, news_id: int, data: NewsUpdate) -> dict | None:
    """
    Partially update an article; returns None when it does not exist.

    ``published_at`` is stamped the first time the article is published.
    """
    news = await _load_news(db, news_id)
    if news is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    await _check_references(db, update_data.get("author_id"), update_data.get("category_id"))

    for field, value in update_data.items():
        setattr(news, field, value)
    if news.published and not news.published_at:
        news.published_at = utcnow()
    news.updated_at = utcnow()

    await db.flush()
    logger.info("Updated news %s", news_id)
    await cache.invalidate_news(news_id)

    # Author/category may have changed; reload the joined references.
    return _news_detail_to_dict(await _reload(db, news))


async def set_published(db: AsyncSession, news_id: int, published: bool) -> dict | None:
    return await update_news(db, news_id, NewsUpdate(published=published))


async def delete_news(db: AsyncSession, news_id: int) -> bool:
    news = await db.get(News, news_id)
    if news is None:
        return False

    await db.delete(news)
    await db.flush()
    logger.info("Deleted news %s", news_id)
    await cache.invalidate_news(news_id)
    return True

"""
Category service — CRUD, search and news-count ranking for categories.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.models import Category, News, utcnow
from app.schemas import CategoryCreate, CategoryUpdate, PaginatedResponse
from app.services.pagination import order_by_clause, paginate

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "name"})


def _category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "created_at": category.created_at.isoformat() if category.created_at else None,
    }


async def get_categories(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(Category).order_by(
        order_by_clause(Category, sort_by, sort_order, _SORTABLE_COLUMNS), Category.id
    )
    return await paginate(db, stmt, _category_to_dict, page, page_size)


async def get_category(db: AsyncSession, category_id: int) -> dict | None:
    category = await db.get(Category, category_id)
    return _category_to_dict(category) if category else None


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    logger.info("Creating category %r", data.name)
    category = Category(**data.model_dump())
    db.add(category)
    await db.flush()
    await db.refresh(category)
    return _category_to_dict(category)


async def update_category(
    db: AsyncSession, category_id: int, data: CategoryUpdate
) -> dict | None:
    category = await db.get(Category, category_id)
    if category is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(category, field, value)
    category.updated_at = utcnow()

    await db.flush()
    logger.info("Updated category %s", category_id)
    await cache.invalidate_news()
    return _category_to_dict(category)


async def delete_category(db: AsyncSession, category_id: int) -> bool:
    """
    Delete the category.

    The news FK is ``ON DELETE RESTRICT``, so deleting a category that
    still has articles raises ``IntegrityError`` on backends that enforce
    foreign keys; the router maps that to 409.
    """
    category = await db.get(Category, category_id)
    if category is None:
        return False
    await db.delete(category)
    await db.flush()
    logger.info("Deleted category %s", category_id)
    return True


async def search_by_name(db: AsyncSession, name: str) -> list[dict]:
    q = (
        select(Category)
        .where(func.lower(Category.name).contains(name.lower(), autoescape=True))
        .order_by(Category.name)
    )
    result = await db.execute(q)
    return [_category_to_dict(c) for c in result.scalars().all()]


async def get_categories_with_published_news(db: AsyncSession) -> list[dict]:
    has_published = (
        select(News.id)
        .where(News.category_id == Category.id, News.published.is_(True))
        .exists()
    )
    result = await db.execute(select(Category).where(has_published).order_by(Category.name))
    return [_category_to_dict(c) for c in result.scalars().all()]


async def get_categories_ordered_by_news_count(db: AsyncSession) -> list[dict]:
    """All categories, most articles first; each dict carries ``news_count``."""
    news_count = func.count(News.id).label("news_count")
    q = (
        select(Category, news_count)
        .outerjoin(News, News.category_id == Category.id)
        .group_by(Category.id)
        .order_by(news_count.desc(), Category.name)
    )
    result = await db.execute(q)
    items = []
    for category, count in result.all():
        data = _category_to_dict(category)
        data["news_count"] = count
        items.append(data)
    return items

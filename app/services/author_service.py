"""
Author service — CRUD and search for news authors.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.models import Author, News, utcnow
from app.schemas import AuthorCreate, AuthorUpdate, PaginatedResponse
from app.services.pagination import order_by_clause, paginate

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "name", "specialization"})


def _author_to_dict(author: Author) -> dict:
    return {
        "id": author.id,
        "name": author.name,
        "email": author.email,
        "phone_number": author.phone_number,
        "bio": author.bio,
        "specialization": author.specialization,
        "created_at": author.created_at.isoformat() if author.created_at else None,
    }


async def get_authors(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(Author).order_by(
        order_by_clause(Author, sort_by, sort_order, _SORTABLE_COLUMNS), Author.id
    )
    return await paginate(db, stmt, _author_to_dict, page, page_size)


async def get_author(db: AsyncSession, author_id: int) -> dict | None:
    author = await db.get(Author, author_id)
    return _author_to_dict(author) if author else None


async def create_author(db: AsyncSession, data: AuthorCreate) -> dict:
    logger.info("Creating author %r", data.name)
    author = Author(**data.model_dump())
    db.add(author)
    await db.flush()
    await db.refresh(author)
    return _author_to_dict(author)


async def update_author(db: AsyncSession, author_id: int, data: AuthorUpdate) -> dict | None:
    author = await db.get(Author, author_id)
    if author is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(author, field, value)
    author.updated_at = utcnow()

    await db.flush()
    logger.info("Updated author %s", author_id)
    await cache.invalidate_news()
    return _author_to_dict(author)


async def delete_author(db: AsyncSession, author_id: int) -> bool:
    """Delete the author; their news articles go with them (FK cascade)."""
    author = await db.get(Author, author_id)
    if author is None:
        return False
    await db.delete(author)
    await db.flush()
    logger.info("Deleted author %s", author_id)
    await cache.invalidate_news()
    return True


async def search_by_name(db: AsyncSession, name: str) -> list[dict]:
    q = (
        select(Author)
        .where(func.lower(Author.name).contains(name.lower(), autoescape=True))
        .order_by(Author.name)
    )
    result = await db.execute(q)
    return [_author_to_dict(a) for a in result.scalars().all()]


async def search_by_specialization(db: AsyncSession, specialization: str) -> list[dict]:
    q = (
        select(Author)
        .where(
            func.lower(Author.specialization).contains(specialization.lower(), autoescape=True)
        )
        .order_by(Author.name)
    )
    result = await db.execute(q)
    return [_author_to_dict(a) for a in result.scalars().all()]


async def get_authors_with_published_news(db: AsyncSession) -> list[dict]:
    """Authors with at least one published article (EXISTS, no duplicates)."""
    has_published = (
        select(News.id)
        .where(News.author_id == Author.id, News.published.is_(True))
        .exists()
    )
    result = await db.execute(select(Author).where(has_published).order_by(Author.name))
    return [_author_to_dict(a) for a in result.scalars().all()]

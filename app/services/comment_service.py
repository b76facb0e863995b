"""
Comment service — CRUD and lookups for comments on news articles.

Creating a comment is the trigger for the notification subsystem: once
the row is flushed and its user, article and article author are loaded,
the comment is snapshotted and handed to the dispatcher when the request
transaction commits.  A rolled-back comment notifies nobody.
"""
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.database import run_after_commit
from app.exceptions import ResourceNotFoundError
from app.models import Comment, News, User, utcnow
from app.schemas import CommentCreate, CommentNotice, CommentUpdate, PaginatedResponse
from app.services.notifications import dispatcher
from app.services.pagination import order_by_clause, paginate

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS: frozenset[str] = frozenset({"created_at", "updated_at"})

_REFERENCES = (
    joinedload(Comment.user),
    joinedload(Comment.news).joinedload(News.author),
)


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "user_id": comment.user_id,
        "username": comment.user.username if comment.user else None,
        "news_id": comment.news_id,
        "news_title": comment.news.title if comment.news else None,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
    }


async def _load_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).options(*_REFERENCES)
    )
    return result.unique().scalar_one_or_none()


async def _list(db: AsyncSession, stmt) -> list[dict]:
    result = await db.execute(stmt.options(*_REFERENCES))
    return [_comment_to_dict(c) for c in result.unique().scalars().all()]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_comment(db: AsyncSession, data: CommentCreate) -> dict:
    """
    Persist a comment and dispatch its notifications once *db* commits.

    Raises ``ResourceNotFoundError`` when the user or the news article does
    not exist.
    """
    if await db.get(User, data.user_id) is None:
        raise ResourceNotFoundError("User", data.user_id)
    if await db.get(News, data.news_id) is None:
        raise ResourceNotFoundError("News", data.news_id)

    comment = Comment(**data.model_dump())
    db.add(comment)
    await db.flush()

    comment_id = comment.id
    db.expunge(comment)
    comment = await _load_comment(db, comment_id)
    logger.info("Created comment %s on news %s by user %s", comment_id, data.news_id, data.user_id)

    notice = CommentNotice.from_comment(comment)
    run_after_commit(db, lambda: dispatcher.dispatch(notice))
    return _comment_to_dict(comment)


async def update_comment(db: AsyncSession, comment_id: int, data: CommentUpdate) -> dict | None:
    comment = await _load_comment(db, comment_id)
    if comment is None:
        return None

    comment.content = data.content
    comment.updated_at = utcnow()
    await db.flush()
    logger.info("Updated comment %s", comment_id)
    return _comment_to_dict(comment)


async def delete_comment(db: AsyncSession, comment_id: int) -> bool:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        return False
    await db.delete(comment)
    await db.flush()
    logger.info("Deleted comment %s", comment_id)
    return True


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_comment(db: AsyncSession, comment_id: int) -> dict | None:
    comment = await _load_comment(db, comment_id)
    return _comment_to_dict(comment) if comment else None


async def get_comments(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(Comment).order_by(
        order_by_clause(Comment, sort_by, sort_order, _SORTABLE_COLUMNS), Comment.id
    )
    return await paginate(db, stmt, _comment_to_dict, page, page_size, options=_REFERENCES)


async def get_comments_by_news(db: AsyncSession, news_id: int) -> list[dict]:
    return await _list(
        db,
        select(Comment)
        .where(Comment.news_id == news_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )


async def get_comments_by_user(db: AsyncSession, user_id: int) -> list[dict]:
    return await _list(
        db,
        select(Comment)
        .where(Comment.user_id == user_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )


async def search_comments(db: AsyncSession, keyword: str) -> list[dict]:
    return await _list(
        db,
        select(Comment)
        .where(Comment.content.icontains(keyword, autoescape=True))
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )


async def get_recent_comments_by_news(db: AsyncSession, news_id: int, hours: int = 24) -> list[dict]:
    """Comments on *news_id* from the last *hours* hours, newest first."""
    since = utcnow() - timedelta(hours=hours)
    return await _list(
        db,
        select(Comment)
        .where(Comment.news_id == news_id, Comment.created_at >= since)
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )


async def get_comments_after(db: AsyncSession, after: datetime) -> list[dict]:
    """Comments created strictly after *after*, oldest first."""
    if after.tzinfo is None:
        after = after.replace(tzinfo=timezone.utc)
    return await _list(
        db,
        select(Comment).where(Comment.created_at > after).order_by(Comment.created_at, Comment.id),
    )


async def count_by_news(db: AsyncSession, news_id: int) -> int:
    q = select(func.count(Comment.id)).where(Comment.news_id == news_id)
    return (await db.execute(q)).scalar_one()


async def count_by_user(db: AsyncSession, user_id: int) -> int:
    q = select(func.count(Comment.id)).where(Comment.user_id == user_id)
    return (await db.execute(q)).scalar_one()

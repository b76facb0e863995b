"""
Read-only comment queries for the notification subsystem.

Unlike the request-scoped services, ``CommentStore`` owns its sessions:
every query opens a short-lived session from the configured factory, so
background tasks never share a connection-bound transaction with the
request that created the comment.  Returned comments are detached with
their user, news article and the article's author already loaded.
"""
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from app.database import async_session
from app.models import Comment, News

_NOTICE_REFERENCES = (
    joinedload(Comment.user),
    joinedload(Comment.news).joinedload(News.author),
)


class CommentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def _all(self, stmt) -> list[Comment]:
        async with self.session_factory() as session:
            result = await session.execute(stmt.options(*_NOTICE_REFERENCES))
            return list(result.unique().scalars().all())

    async def find_recent_comments_since(self, news_id: int, since: datetime) -> list[Comment]:
        """Comments on *news_id* created at or after *since*, newest first."""
        return await self._all(
            select(Comment)
            .where(Comment.news_id == news_id, Comment.created_at >= since)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )

    async def find_comments_created_after(self, timestamp: datetime) -> list[Comment]:
        """Comments created strictly after *timestamp*, oldest first."""
        return await self._all(
            select(Comment)
            .where(Comment.created_at > timestamp)
            .order_by(Comment.created_at, Comment.id)
        )

    async def find_most_recent(self, limit: int) -> list[Comment]:
        return await self._all(
            select(Comment).order_by(Comment.created_at.desc(), Comment.id.desc()).limit(limit)
        )

    async def find_by_ids(self, comment_ids: Sequence[int]) -> list[Comment]:
        """Comments whose id is in *comment_ids*, in the order the ids were given."""
        if not comment_ids:
            return []
        found = await self._all(select(Comment).where(Comment.id.in_(list(comment_ids))))
        by_id = {c.id: c for c in found}
        return [by_id[i] for i in dict.fromkeys(comment_ids) if i in by_id]


# Module-level singleton used by the notification wiring; tests point its
# session_factory at the test engine.
comment_store = CommentStore(async_session)

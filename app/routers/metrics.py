from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.models import Author, Category, Comment, News, User
from app.schemas import MetricsResponse
from app.cache import cache

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()

@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):

    total_news = await _count(db, News)

    total_comments = await _count(db, Comment)

    avg_comments = total_comments / total_news if total_news > 0 else 0

    return MetricsResponse(
        total_users=await _count(db, User),
        total_authors=await _count(db, Author),
        total_categories=await _count(db, Category),
        total_news=total_news,
        total_comments=total_comments,
        avg_comments_per_news=round(avg_comments, 2),
        cache_info=cache.stats,
    )

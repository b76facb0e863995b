from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.schemas import NewsCreate, NewsDetail, NewsUpdate, PaginatedResponse
from app.services import news_service

router = APIRouter(prefix="/api/v1/news", tags=["news"])

@router.get("", response_model=PaginatedResponse)
async def list_published_news(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_published_news(db, **pagination.as_kwargs())

@router.get("/all", response_model=PaginatedResponse)
async def list_all_news(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_all_news(db, **pagination.as_kwargs())

@router.get("/search", response_model=PaginatedResponse)
async def search_news(
    keyword: str = Query(..., min_length=1),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.search_news(db, keyword, **pagination.as_kwargs())

@router.get("/top", response_model=PaginatedResponse)
async def top_news(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_top_news(db, pagination.page, pagination.page_size)

@router.get("/recent", response_model=PaginatedResponse)
async def recent_news(
    days: int = Query(7, ge=1, le=365),
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_recent_news(db, days, pagination.page, pagination.page_size)

@router.get("/author/{author_id}", response_model=PaginatedResponse)
async def news_by_author(
    author_id: int,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_news_by_author(db, author_id, **pagination.as_kwargs())

@router.get("/category/{category_id}", response_model=PaginatedResponse)
async def news_by_category(
    category_id: int,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await news_service.get_news_by_category(db, category_id, **pagination.as_kwargs())

@router.get("/{news_id}", response_model=NewsDetail)
async def get_news(news_id: int, db: AsyncSession = Depends(get_db)):
    news = await news_service.get_news(db, news_id)
    if not news:
        raise HTTPException(status_code=404, detail="News not found")
    return news

@router.post("", status_code=201, response_model=NewsDetail)
async def create_news(data: NewsCreate, db: AsyncSession = Depends(get_db)):
    return await news_service.create_news(db, data)

@router.put("/{news_id}", response_model=NewsDetail)
async def update_news(news_id: int, data: NewsUpdate, db: AsyncSession = Depends(get_db)):
    news = await news_service.update_news(db, news_id, data)
    if not news:
        raise HTTPException(status_code=404, detail="News not found")
    return news

@router.post("/{news_id}/publish", response_model=NewsDetail)
async def publish_news(news_id: int, db: AsyncSession = Depends(get_db)):
    news = await news_service.set_published(db, news_id, True)
    if not news:
        raise HTTPException(status_code=404, detail="News not found")
    return news

@router.post("/{news_id}/unpublish", response_model=NewsDetail)
async def unpublish_news(news_id: int, db: AsyncSession = Depends(get_db)):
    news = await news_service.set_published(db, news_id, False)
    if not news:
        raise HTTPException(status_code=404, detail="News not found")
    return news

@router.delete("/{news_id}", status_code=204)
async def delete_news(news_id: int, db: AsyncSession = Depends(get_db)):
    deleted = await news_service.delete_news(db, news_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="News not found")

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.schemas import CommentCreate, CommentResponse, CommentUpdate, CountResponse, PaginatedResponse
from app.services import comment_service

router = APIRouter(prefix="/api/v1/comments", tags=["comments"])

@router.get("", response_model=PaginatedResponse)
async def list_comments(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.get_comments(db, **pagination.as_kwargs())

@router.get("/search", response_model=list[CommentResponse])
async def search_comments(keyword: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return await comment_service.search_comments(db, keyword)

@router.get("/after", response_model=list[CommentResponse])
async def comments_after(date: datetime, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comments_after(db, date)

@router.get("/news/{news_id}", response_model=list[CommentResponse])
async def comments_by_news(news_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comments_by_news(db, news_id)

@router.get("/news/{news_id}/recent", response_model=list[CommentResponse])
async def recent_comments_by_news(
    news_id: int,
    hours: int = Query(24, ge=1, le=24 * 30),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.get_recent_comments_by_news(db, news_id, hours)

@router.get("/news/{news_id}/count", response_model=CountResponse)
async def count_by_news(news_id: int, db: AsyncSession = Depends(get_db)):
    return CountResponse(count=await comment_service.count_by_news(db, news_id))

@router.get("/user/{user_id}", response_model=list[CommentResponse])
async def comments_by_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comments_by_user(db, user_id)

@router.get("/user/{user_id}/count", response_model=CountResponse)
async def count_by_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return CountResponse(count=await comment_service.count_by_user(db, user_id))

@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment

@router.post("", status_code=201, response_model=CommentResponse)
async def create_comment(data: CommentCreate, db: AsyncSession = Depends(get_db)):
    return await comment_service.create_comment(db, data)

@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(comment_id: int, data: CommentUpdate, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.update_comment(db, comment_id, data)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment

@router.delete("/{comment_id}", status_code=204)
async def delete_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    deleted = await comment_service.delete_comment(db, comment_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Comment not found")

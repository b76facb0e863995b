from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.schemas import CategoryCreate, CategoryResponse, CategoryUpdate, PaginatedResponse
from app.services import category_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])

_DUPLICATE = "A category with this name already exists"

@router.get("", response_model=PaginatedResponse)
async def list_categories(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.get_categories(db, **pagination.as_kwargs())

@router.get("/search", response_model=list[CategoryResponse])
async def search_categories(name: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return await category_service.search_by_name(db, name)

@router.get("/with-published-news", response_model=list[CategoryResponse])
async def categories_with_published_news(db: AsyncSession = Depends(get_db)):
    return await category_service.get_categories_with_published_news(db)

@router.get("/by-news-count")
async def categories_by_news_count(db: AsyncSession = Depends(get_db)):
    return await category_service.get_categories_ordered_by_news_count(db)

@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    category = await category_service.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category

@router.post("", status_code=201, response_model=CategoryResponse)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await category_service.create_category(db, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE)

@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: int, data: CategoryUpdate, db: AsyncSession = Depends(get_db)):
    try:
        category = await category_service.update_category(db, category_id, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category

@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    try:
        deleted = await category_service.delete_category(db, category_id)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Category still has news articles")
    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.dependencies import PaginationParams
from app.schemas import AuthorCreate, AuthorResponse, AuthorUpdate, PaginatedResponse
from app.services import author_service

router = APIRouter(prefix="/api/v1/authors", tags=["authors"])

_DUPLICATE = "An author with this email already exists"

@router.get("", response_model=PaginatedResponse)
async def list_authors(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await author_service.get_authors(db, **pagination.as_kwargs())

@router.get("/search/name", response_model=list[AuthorResponse])
async def search_by_name(name: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    return await author_service.search_by_name(db, name)

@router.get("/search/specialization", response_model=list[AuthorResponse])
async def search_by_specialization(
    specialization: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)
):
    return await author_service.search_by_specialization(db, specialization)

@router.get("/with-published-news", response_model=list[AuthorResponse])
async def authors_with_published_news(db: AsyncSession = Depends(get_db)):
    return await author_service.get_authors_with_published_news(db)

@router.get("/{author_id}", response_model=AuthorResponse)
async def get_author(author_id: int, db: AsyncSession = Depends(get_db)):
    author = await author_service.get_author(db, author_id)
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    return author

@router.post("", status_code=201, response_model=AuthorResponse)
async def create_author(data: AuthorCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await author_service.create_author(db, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE)

@router.put("/{author_id}", response_model=AuthorResponse)
async def update_author(author_id: int, data: AuthorUpdate, db: AsyncSession = Depends(get_db)):
    try:
        author = await author_service.update_author(db, author_id, data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=_DUPLICATE)
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    return author

@router.delete("/{author_id}", status_code=204)
async def delete_author(author_id: int, db: AsyncSession = Depends(get_db)):
    deleted = await author_service.delete_author(db, author_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Author not found")

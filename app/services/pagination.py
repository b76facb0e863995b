"""
Shared pagination helpers for the list endpoints.

Every paginated service issues the same two statements: a COUNT over the
filtered query and the page itself with LIMIT/OFFSET.  Sort columns are
resolved against a per-model whitelist so arbitrary attribute names from
the query string never reach SQLAlchemy.
"""
import math
from typing import Callable, Iterable, Sequence

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas import PaginatedResponse


def order_by_clause(model, sort_by: str, sort_order: str, sortable: Iterable[str]):
    """
    Return the ORDER BY expression for *sort_by* on *model*.

    Falls back to ``model.created_at`` for any column outside *sortable*.
    """
    column = getattr(model, sort_by) if sort_by in sortable else model.created_at
    return desc(column) if sort_order == "desc" else asc(column)


async def paginate(
    db: AsyncSession,
    stmt: Select,
    serializer: Callable,
    page: int = 1,
    page_size: int = 20,
    options: Sequence = (),
) -> PaginatedResponse:
    """
    Run COUNT + page queries for *stmt* and wrap the result.

    Loader *options* are applied to the page query only; the COUNT runs
    over the bare filtered statement.
    """
    count_q = select(func.count()).select_from(stmt.order_by(None).subquery())
    total: int = (await db.execute(count_q)).scalar_one()

    page_q = stmt.options(*options).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(page_q)
    rows = result.unique().scalars().all()

    return PaginatedResponse(
        items=[serializer(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )

"""
User service — CRUD and name search for the User aggregate.

Users are read without caching: the data changes rarely and every read is
a single indexed lookup.  Uniqueness of username and email is enforced by
the schema; the router maps ``IntegrityError`` to 409.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import User, utcnow
from app.schemas import PaginatedResponse, UserCreate, UserUpdate
from app.services.pagination import order_by_clause, paginate

logger = logging.getLogger(__name__)

_SORTABLE_COLUMNS: frozenset[str] = frozenset(
    {"created_at", "username", "email", "first_name", "last_name"}
)


def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_users(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> PaginatedResponse:
    stmt = select(User).order_by(
        order_by_clause(User, sort_by, sort_order, _SORTABLE_COLUMNS), User.id
    )
    return await paginate(db, stmt, _user_to_dict, page, page_size)


async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    return _user_to_dict(user)


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Raises ``IntegrityError`` on a duplicate username or email.
    """
    logger.info("Creating user %r", data.username)
    user = User(**data.model_dump())
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return _user_to_dict(user)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> dict | None:
    """Apply the fields set in *data*; returns None when the user does not exist."""
    user = await db.get(User, user_id)
    if user is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    user.updated_at = utcnow()

    await db.flush()
    logger.info("Updated user %s", user_id)
    return _user_to_dict(user)


async def delete_user(db: AsyncSession, user_id: int) -> bool:
    user = await db.get(User, user_id)
    if user is None:
        return False
    await db.delete(user)
    await db.flush()
    logger.info("Deleted user %s", user_id)
    return True


async def search_users(
    db: AsyncSession,
    first_name: str | None = None,
    last_name: str | None = None,
) -> list[dict]:
    """Case-insensitive substring match on first and/or last name."""
    q = select(User).order_by(User.username)
    if first_name:
        q = q.where(func.lower(User.first_name).contains(first_name.lower(), autoescape=True))
    if last_name:
        q = q.where(func.lower(User.last_name).contains(last_name.lower(), autoescape=True))

    result = await db.execute(q)
    return [_user_to_dict(u) for u in result.scalars().all()]

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# --- User ---

class UserBase(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class UserCreate(UserBase):
    pass


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=50)
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class UserResponse(UserBase):
    id: int
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Author ---

class AuthorBase(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr | None = None
    phone_number: str | None = Field(None, max_length=20)
    bio: str | None = Field(None, max_length=500)
    specialization: str | None = Field(None, max_length=200)


class AuthorCreate(AuthorBase):
    pass


class AuthorUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone_number: str | None = Field(None, max_length=20)
    bio: str | None = Field(None, max_length=500)
    specialization: str | None = Field(None, max_length=200)


class AuthorResponse(AuthorBase):
    id: int
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Category ---

class CategoryBase(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)


class CategoryResponse(CategoryBase):
    id: int
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


# --- News ---

class NewsBase(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    summary: str | None = Field(None, max_length=500)
    published: bool = False


class NewsCreate(NewsBase):
    author_id: int
    category_id: int


class NewsUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)
    summary: str | None = Field(None, max_length=500)
    published: bool | None = None
    author_id: int | None = None
    category_id: int | None = None


class NewsResponse(BaseModel):
    id: int
    title: str
    summary: str | None
    view_count: int
    published: bool
    published_at: datetime | None
    created_at: datetime | None
    author_id: int
    author_name: str | None = None
    category_id: int
    category_name: str | None = None
    model_config = ConfigDict(from_attributes=True)


class NewsDetail(NewsResponse):
    content: str


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    user_id: int
    news_id: int


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: int
    content: str
    user_id: int
    username: str | None = None
    news_id: int
    news_title: str | None = None
    created_at: datetime | None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class CountResponse(BaseModel):
    count: int


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Will be typed in router
    total: int
    page: int
    page_size: int
    pages: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_users: int
    total_authors: int
    total_categories: int
    total_news: int
    total_comments: int
    avg_comments_per_news: float
    cache_info: dict = {}


# --- Notifications ---

class NotificationKind(str, Enum):
    AUTHOR_NOTICE = "author_notice"
    COMMENTER_FANOUT = "commenter_fanout"
    DELAYED_REDRIVE = "delayed_redrive"


class TaskOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class CommentNotice(BaseModel):
    """
    Immutable snapshot of a persisted comment, taken at dispatch time.

    Background tasks work from this copy rather than the ORM instance, so
    they never touch the request session that created the comment.  Any
    reference the caller did not resolve is left as None and reported by
    the task that needs it.
    """

    model_config = ConfigDict(frozen=True)

    comment_id: int | None
    content: str = ""
    created_at: datetime | None = None
    user_id: int | None = None
    username: str | None = None
    news_id: int | None = None
    news_title: str | None = None
    news_author_id: int | None = None
    news_author_name: str | None = None
    news_author_email: str | None = None

    @classmethod
    def from_comment(cls, comment) -> "CommentNotice":
        user = getattr(comment, "user", None)
        news = getattr(comment, "news", None)
        author = getattr(news, "author", None) if news is not None else None
        return cls(
            comment_id=getattr(comment, "id", None),
            content=getattr(comment, "content", None) or "",
            created_at=getattr(comment, "created_at", None),
            user_id=user.id if user is not None else getattr(comment, "user_id", None),
            username=user.username if user is not None else None,
            news_id=news.id if news is not None else getattr(comment, "news_id", None),
            news_title=news.title if news is not None else None,
            news_author_id=author.id if author is not None else None,
            news_author_name=author.name if author is not None else None,
            news_author_email=author.email if author is not None else None,
        )


class Notification(BaseModel):
    """Message handed to a ``Notifier``; one per task invocation."""

    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    comment_id: int | None
    recipients: tuple[str, ...]
    subject: str
    body: str = ""


class SweepState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DISPATCHING = "dispatching"


class SweepResult(BaseModel):
    status: str  # "completed" | "skipped" | "failed"
    found: int = 0
    checkpoint: datetime


class NotificationStatistics(BaseModel):
    status: str  # "ACTIVE" | "STOPPED" | "DEGRADED"
    last_sweep_at: datetime | None = None
    sweep_state: SweepState | None = None
    recent_comment_count: int | None = None
    in_flight_tasks: int = 0
    outcomes: dict[str, int] = {}
    error: str | None = None


class BulkNotificationRequest(BaseModel):
    comment_ids: list[int] = Field(min_length=1, max_length=500)


class BulkNotificationResponse(BaseModel):
    accepted: int
    missing_ids: list[int] = []

"""
Test infrastructure for the News Agency API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- The Redis cache is disabled by setting cache._redis = None; the CacheManager
  already handles a None _redis gracefully (no-op reads and writes), so tests
  exercise real service logic without any Redis infrastructure.
- The process-wide notification singletons are pointed at an in-memory
  comment store and a recording notifier for every test.  Background tasks
  spawned by POST /comments therefore never touch the shared SQLite
  connection while the test itself is using it.
"""
import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.cache import cache
from app.exceptions import DeliveryError
from app.middleware import install_query_counter
from app.models import Author, Comment, News, User, utcnow
from app.schemas import SweepState
from app.services import notifications
from app.services.comment_store import comment_store
from app.services.comment_sweeper import CommentSweeper
from app.services.notification_service import NotificationDispatcher
from app.services.notifier import Notifier
from app.services.task_pool import TaskPool

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Register the per-request SQL query counter on the test engine.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override — replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db

# Nothing in the suite may reach the production database through the store.
comment_store.session_factory = async_session_test


# ---------------------------------------------------------------------------
# Notification fakes
# ---------------------------------------------------------------------------

class FakeCommentStore:
    """
    In-memory stand-in for ``CommentStore``.

    ``fail`` makes every query raise; ``delay`` makes every query sleep
    first, which is how tests hold a sweep cycle open.
    """

    def __init__(self):
        self.comments: list[Comment] = []
        self.fail = False
        self.delay = 0.0
        self.calls: list[str] = []

    def add(self, *comments: Comment):
        self.comments.extend(comments)

    async def _query(self, name: str):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("comment store unavailable")

    async def find_recent_comments_since(self, news_id, since):
        await self._query("find_recent_comments_since")
        found = [c for c in self.comments if c.news_id == news_id and c.created_at >= since]
        return sorted(found, key=lambda c: c.created_at, reverse=True)

    async def find_comments_created_after(self, timestamp):
        await self._query("find_comments_created_after")
        return sorted((c for c in self.comments if c.created_at > timestamp), key=lambda c: c.created_at)

    async def find_most_recent(self, limit):
        await self._query("find_most_recent")
        return sorted(self.comments, key=lambda c: c.created_at, reverse=True)[:limit]

    async def find_by_ids(self, comment_ids):
        await self._query("find_by_ids")
        by_id = {c.id: c for c in self.comments}
        return [by_id[i] for i in dict.fromkeys(comment_ids) if i in by_id]


class RecordingNotifier(Notifier):
    """Notifier that remembers what it was asked to send."""

    def __init__(self):
        self.sent = []
        self.started = []
        self.delay = 0.0
        self.fail_kinds = set()

    async def send(self, notification):
        self.started.append(notification)
        if self.delay:
            await asyncio.sleep(self.delay)
        if notification.kind in self.fail_kinds:
            raise DeliveryError(notification.comment_id, notification.kind.value)
        self.sent.append(notification)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(autouse=True)
async def notification_runtime(monkeypatch):
    """
    Point the app's notification singletons at in-memory fakes and run the
    shared task pool on this test's event loop.
    """
    store = FakeCommentStore()
    notifier = RecordingNotifier()
    dispatcher = notifications.dispatcher
    monkeypatch.setattr(dispatcher, "store", store)
    monkeypatch.setattr(dispatcher, "notifier", notifier)
    monkeypatch.setattr(dispatcher, "outcomes", type(dispatcher.outcomes)())
    monkeypatch.setattr(dispatcher, "_dispatched", type(dispatcher._dispatched)())
    monkeypatch.setattr(notifications.sweeper, "store", store)
    monkeypatch.setattr(notifications.sweeper, "state", SweepState.IDLE)
    monkeypatch.setattr(notifications.sweeper, "checkpoint", utcnow())

    notifications.task_pool.start()
    yield store, notifier
    await notifications.task_pool.shutdown(0)


@pytest.fixture
def app_store(notification_runtime) -> FakeCommentStore:
    return notification_runtime[0]


@pytest.fixture
def app_notifier(notification_runtime) -> RecordingNotifier:
    return notification_runtime[1]


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """The test session factory, for components that open their own sessions."""
    return async_session_test


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    Redis is disabled by setting cache._redis = None before each request so
    that tests are deterministic and do not depend on external infrastructure.
    The CacheManager's graceful degradation (returning None on get, no-op on
    set) means all service code still exercises the real database path.
    """
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Stand-alone notification components (not the app singletons)
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_store() -> FakeCommentStore:
    return FakeCommentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def pool() -> TaskPool:
    task_pool = TaskPool(max_workers=4)
    task_pool.start()
    yield task_pool
    await task_pool.shutdown(0)


@pytest.fixture
def dispatcher(fake_store, pool, notifier) -> NotificationDispatcher:
    return NotificationDispatcher(
        store=fake_store,
        pool=pool,
        notifier=notifier,
        lookback_days=7,
        dedup_capacity=100,
        bulk_pacing=0.05,
    )


@pytest.fixture
def sweeper(dispatcher, fake_store) -> CommentSweeper:
    return CommentSweeper(dispatcher, fake_store, interval_seconds=3600)


@pytest.fixture
def make_comment():
    """
    Build transient Comment objects with user, news and news author attached.

    Users and articles are cached by id so comments built with the same
    ``user_id`` share one User instance.
    """
    users: dict[int, User] = {}
    articles: dict[int, News] = {}
    counter = {"id": 0}

    def _make(
        user_id: int = 1,
        news_id: int = 1,
        age: timedelta = timedelta(0),
        comment_id: int | None = None,
        content: str = "Nice piece",
        with_author: bool = True,
    ) -> Comment:
        counter["id"] += 1
        user = users.setdefault(
            user_id,
            User(id=user_id, username=f"user{user_id}", email=f"user{user_id}@example.com"),
        )
        news = articles.get(news_id)
        if news is None:
            news = News(id=news_id, title=f"Story {news_id}", content="Body", author_id=100 + news_id, category_id=1)
            if with_author:
                news.author = Author(id=100 + news_id, name=f"Reporter {news_id}", email=f"reporter{news_id}@example.com")
            articles[news_id] = news

        comment = Comment(
            id=comment_id if comment_id is not None else counter["id"],
            content=content,
            user_id=user_id,
            news_id=news_id,
            created_at=utcnow() - age,
        )
        comment.user = user
        comment.news = news
        return comment

    return _make

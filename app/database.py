import logging
from typing import Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase, Session

from app.config import settings
from app.middleware import install_query_counter

logger = logging.getLogger(__name__)

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

# Shared by request sessions (get_db) and the notification comment store,
# which opens its own short-lived sessions outside any request.
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

_AFTER_COMMIT = "after_commit_callbacks"


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back request transaction", exc_info=True)
            await session.rollback()
            raise


def run_after_commit(session: AsyncSession, callback: Callable[[], None]) -> None:
    """
    Call *callback* once the session's current transaction commits.

    A rollback discards every callback registered since the last commit.
    Callback errors are logged; the commit has already happened.
    """
    sync_session = session.sync_session
    if not event.contains(sync_session, "after_commit", _run_after_commit):
        event.listen(sync_session, "after_commit", _run_after_commit)
        event.listen(sync_session, "after_soft_rollback", _discard_after_commit)
    sync_session.info.setdefault(_AFTER_COMMIT, []).append(callback)


def _run_after_commit(session: Session) -> None:
    for callback in session.info.pop(_AFTER_COMMIT, []):
        try:
            callback()
        except Exception:
            logger.exception("After-commit callback %r failed", callback)


def _discard_after_commit(session: Session, previous_transaction) -> None:
    dropped = session.info.pop(_AFTER_COMMIT, [])
    if dropped:
        logger.debug("Discarded %d after-commit callback(s) on rollback", len(dropped))


async def dispose_engine() -> None:
    """Close pooled connections.  Called once at application shutdown."""
    await engine.dispose()

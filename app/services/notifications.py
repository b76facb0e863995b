"""
Process-wide notification singletons, built from ``settings``.

``app.main`` starts and stops them from the lifespan handler; the comment
service and the notifications router import them from here.
"""
from app.config import settings
from app.schemas import NotificationStatistics
from app.services.comment_store import comment_store
from app.services.comment_sweeper import CommentSweeper
from app.services.notification_service import NotificationDispatcher
from app.services.notifier import LoggingNotifier
from app.services.task_pool import TaskPool

task_pool = TaskPool(max_workers=settings.NOTIFICATION_MAX_WORKERS)

dispatcher = NotificationDispatcher(
    store=comment_store,
    pool=task_pool,
    notifier=LoggingNotifier.from_settings(),
    lookback_days=settings.COMMENTER_LOOKBACK_DAYS,
    dedup_capacity=settings.NOTIFICATION_DEDUP_CAPACITY,
    bulk_pacing=settings.BULK_PACING_SECONDS,
    stats_recent_limit=settings.STATS_RECENT_LIMIT,
)

sweeper = CommentSweeper(
    dispatcher=dispatcher,
    store=comment_store,
    interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
)


async def get_statistics_snapshot() -> NotificationStatistics:
    return await dispatcher.get_statistics_snapshot(sweeper)

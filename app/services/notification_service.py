"""
Notification dispatcher — fire-and-forget notifications for new comments.

Design notes
------------
- ``dispatch`` is a plain (synchronous) method: it snapshots the comment
  into a ``CommentNotice`` and hands two independent tasks to the
  ``TaskPool``.  The request that created the comment never waits for
  delivery and never sees a delivery error.
- Every task goes through ``_execute``, which logs a terminal outcome
  and counts it.  A task cancelled while still queued never reaches it
  and is counted as cancelled by the pool's ``on_cancel`` hook.
- Delivery latency and failures belong to the ``Notifier``; nothing here
  sleeps except the pacing between bulk issues.
- The dispatcher remembers the ids it has dispatched (bounded, oldest
  evicted first).  The sweeper's redrive skips those, so a comment created
  through the API is notified once even though the sweep will find it.
"""
import asyncio
import functools
import logging
from collections import Counter, OrderedDict
from datetime import timedelta
from typing import Awaitable, Callable, Iterable

from app.exceptions import UnresolvedReferenceError
from app.models import utcnow
from app.schemas import (
    CommentNotice,
    Notification,
    NotificationKind,
    NotificationStatistics,
    TaskOutcome,
)
from app.services.comment_store import CommentStore
from app.services.notifier import Notifier
from app.services.task_pool import TaskPool

logger = logging.getLogger(__name__)

STATISTICS_ERROR = "Error retrieving notification statistics"


def _as_notice(comment) -> CommentNotice:
    if isinstance(comment, CommentNotice):
        return comment
    return CommentNotice.from_comment(comment)


class NotificationDispatcher:
    def __init__(
        self,
        store: CommentStore,
        pool: TaskPool,
        notifier: Notifier,
        lookback_days: int = 7,
        dedup_capacity: int = 1000,
        bulk_pacing: float = 0.1,
        stats_recent_limit: int = 10,
    ):
        self.store = store
        self.pool = pool
        self.notifier = notifier
        self.lookback_days = lookback_days
        self.dedup_capacity = dedup_capacity
        self.bulk_pacing = bulk_pacing
        self.stats_recent_limit = stats_recent_limit
        self.outcomes: Counter = Counter()
        self._dispatched: OrderedDict[int, None] = OrderedDict()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def dispatch(self, comment) -> None:
        """Queue the author notice and the commenter fan-out for *comment*."""
        try:
            notice = _as_notice(comment)
        except Exception:
            logger.exception("Could not snapshot comment %s for notification", getattr(comment, "id", None))
            return

        logger.info(
            "Dispatching notifications for comment %s on news %r by user %r",
            notice.comment_id,
            notice.news_title,
            notice.username,
        )
        self._remember(notice.comment_id)
        self._submit(NotificationKind.AUTHOR_NOTICE, notice, self._send_author_notice)
        self._submit(NotificationKind.COMMENTER_FANOUT, notice, self._send_commenter_fanout)

    async def notify_author(self, comment) -> TaskOutcome:
        return await self._execute(
            NotificationKind.AUTHOR_NOTICE, _as_notice(comment), self._send_author_notice
        )

    async def notify_other_commenters(self, comment) -> TaskOutcome:
        return await self._execute(
            NotificationKind.COMMENTER_FANOUT, _as_notice(comment), self._send_commenter_fanout
        )

    def redrive(self, comment) -> bool:
        """
        Queue catch-up notifications for a comment found by the sweeper.

        Like ``dispatch``, the author notice and the commenter fan-out run
        as two independent tasks, both of kind ``delayed_redrive``.
        Comments this process already dispatched are skipped (outcome
        ``skipped``).  Returns True when at least one task was queued.
        """
        notice = _as_notice(comment)
        if notice.comment_id in self._dispatched:
            self.outcomes[TaskOutcome.SKIPPED.value] += 1
            logger.info(
                "%s for comment %s skipped: already dispatched",
                NotificationKind.DELAYED_REDRIVE.value,
                notice.comment_id,
            )
            return False

        self._remember(notice.comment_id)
        kind = NotificationKind.DELAYED_REDRIVE
        author = self._submit(
            kind, notice, functools.partial(self._send_author_notice, kind=kind), label="author"
        )
        fanout = self._submit(
            kind, notice, functools.partial(self._send_commenter_fanout, kind=kind), label="commenters"
        )
        return author or fanout

    async def process_bulk(self, comments: Iterable) -> int:
        """
        Dispatch *comments* in order, pausing ``bulk_pacing`` seconds between
        issues.  Stops early once the task pool shuts down.  Returns the
        number issued; does not wait for delivery.
        """
        comments = list(comments)
        logger.info("Processing bulk notifications for %d comments", len(comments))
        issued = 0
        try:
            for comment in comments:
                if issued:
                    await asyncio.sleep(self.bulk_pacing)
                if not self.pool.running:
                    logger.warning(
                        "Bulk notification processing stopped after %d of %d comments: task pool shut down",
                        issued,
                        len(comments),
                    )
                    return issued
                self.dispatch(comment)
                issued += 1
        except asyncio.CancelledError:
            logger.warning(
                "Bulk notification processing interrupted after %d of %d comments",
                issued,
                len(comments),
            )
            raise

        logger.info("Bulk notification processing completed for %d comments", issued)
        return issued

    async def get_statistics_snapshot(self, sweeper=None) -> NotificationStatistics:
        """Point-in-time view of the subsystem; never raises on store failure."""
        snapshot = {
            "status": "ACTIVE" if self.pool.running else "STOPPED",
            "last_sweep_at": sweeper.checkpoint if sweeper is not None else None,
            "sweep_state": sweeper.state if sweeper is not None else None,
            "in_flight_tasks": self.pool.in_flight,
            "outcomes": dict(self.outcomes),
        }
        try:
            recent = await self.store.find_most_recent(self.stats_recent_limit)
        except Exception:
            logger.exception("Error getting notification statistics")
            snapshot["status"] = "DEGRADED"
            return NotificationStatistics(**snapshot, error=STATISTICS_ERROR)
        return NotificationStatistics(**snapshot, recent_comment_count=len(recent))

    # ------------------------------------------------------------------
    # Task bodies
    # ------------------------------------------------------------------

    async def _send_author_notice(
        self, notice: CommentNotice, kind: NotificationKind = NotificationKind.AUTHOR_NOTICE
    ) -> None:
        if notice.news_id is None:
            raise UnresolvedReferenceError(notice.comment_id, "news")
        if notice.news_author_id is None:
            raise UnresolvedReferenceError(notice.comment_id, "news.author")

        recipient = notice.news_author_email or notice.news_author_name
        await self.notifier.send(
            Notification(
                kind=kind,
                comment_id=notice.comment_id,
                recipients=(recipient,),
                subject=f"New comment on '{notice.news_title}'",
                body=notice.content,
            )
        )
        logger.info("Author notification sent to %s for comment %s", notice.news_author_name, notice.comment_id)

    async def _send_commenter_fanout(
        self, notice: CommentNotice, kind: NotificationKind = NotificationKind.COMMENTER_FANOUT
    ) -> None:
        if notice.news_id is None:
            raise UnresolvedReferenceError(notice.comment_id, "news")

        recipients = await self._other_commenters(notice)
        if recipients:
            await self.notifier.send(
                Notification(
                    kind=kind,
                    comment_id=notice.comment_id,
                    recipients=tuple(recipients.values()),
                    subject=f"New reply on '{notice.news_title}'",
                    body=notice.content,
                )
            )
        logger.info("Notified %d other commenters about comment %s", len(recipients), notice.comment_id)

    async def _other_commenters(self, notice: CommentNotice) -> dict[int, str]:
        """Distinct users who commented on the same news within the lookback window, minus the author of *notice*."""
        since = utcnow() - timedelta(days=self.lookback_days)
        try:
            comments = await self.store.find_recent_comments_since(notice.news_id, since)
        except Exception:
            logger.warning(
                "Could not load recent comments for news %s; notifying no other commenters",
                notice.news_id,
                exc_info=True,
            )
            return {}

        recipients: dict[int, str] = {}
        for comment in comments:
            if comment.user_id == notice.user_id or comment.user_id in recipients:
                continue
            user = comment.user
            recipients[comment.user_id] = user.username if user is not None else str(comment.user_id)
            logger.debug("Notifying user %r about comment %s", recipients[comment.user_id], notice.comment_id)
        return recipients

    # ------------------------------------------------------------------
    # Task plumbing
    # ------------------------------------------------------------------

    def _submit(
        self,
        kind: NotificationKind,
        notice: CommentNotice,
        operation: Callable[[CommentNotice], Awaitable[None]],
        label: str | None = None,
    ) -> bool:
        name = f"{kind.value}:{notice.comment_id}"
        if label:
            name = f"{name}:{label}"
        submitted = self.pool.submit(
            self._execute,
            kind,
            notice,
            operation,
            name=name,
            on_cancel=functools.partial(self._cancelled_before_start, kind, notice),
        )
        if not submitted:
            logger.error("%s for comment %s was not queued", kind.value, notice.comment_id)
        return submitted

    async def _execute(
        self,
        kind: NotificationKind,
        notice: CommentNotice,
        operation: Callable[[CommentNotice], Awaitable[None]],
    ) -> TaskOutcome:
        try:
            await operation(notice)
        except asyncio.CancelledError:
            self._record(TaskOutcome.CANCELLED)
            logger.warning("%s for comment %s interrupted", kind.value, notice.comment_id)
            raise
        except UnresolvedReferenceError as exc:
            self._record(TaskOutcome.FAILED)
            logger.error("%s for comment %s failed: %s", kind.value, notice.comment_id, exc.message)
            return TaskOutcome.FAILED
        except Exception:
            self._record(TaskOutcome.FAILED)
            logger.exception("%s for comment %s failed", kind.value, notice.comment_id)
            return TaskOutcome.FAILED

        self._record(TaskOutcome.SUCCEEDED)
        logger.info("%s for comment %s succeeded", kind.value, notice.comment_id)
        return TaskOutcome.SUCCEEDED

    def _cancelled_before_start(self, kind: NotificationKind, notice: CommentNotice):
        self._record(TaskOutcome.CANCELLED)
        logger.warning("%s for comment %s cancelled before it started", kind.value, notice.comment_id)

    def _record(self, outcome: TaskOutcome):
        self.outcomes[outcome.value] += 1

    def _remember(self, comment_id: int | None):
        if comment_id is None:
            return
        self._dispatched[comment_id] = None
        self._dispatched.move_to_end(comment_id)
        while len(self._dispatched) > self.dedup_capacity:
            self._dispatched.popitem(last=False)

"""
Delayed-comment sweeper — periodic catch-up scan for missed notifications.

Every ``interval_seconds`` the sweeper asks the comment store for comments
created strictly after its checkpoint and hands each one to the
dispatcher's redrive path.  The checkpoint lives in memory only: it starts
at process start and is advanced exclusively by ``run_cycle``.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable

from app.models import utcnow
from app.schemas import SweepResult, SweepState

logger = logging.getLogger(__name__)


class CommentSweeper:
    """
    Background service that periodically re-drives notifications.

    State moves IDLE -> SCANNING -> DISPATCHING -> IDLE.  A trigger that
    arrives while the state is not IDLE is skipped, so two cycles never
    overlap whether they come from the timer or from the API.
    """

    def __init__(
        self,
        dispatcher,
        store,
        interval_seconds: float = 300.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.dispatcher = dispatcher
        self.store = store
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.checkpoint: datetime = clock()
        self.state = SweepState.IDLE
        self.running = False
        self.task: asyncio.Task | None = None

    async def run_cycle(self) -> SweepResult:
        """Run one sweep; returns its status, the number found and the checkpoint."""
        if self.state is not SweepState.IDLE:
            logger.info("Sweep already %s; skipping trigger", self.state.value)
            return SweepResult(status="skipped", checkpoint=self.checkpoint)

        self.state = SweepState.SCANNING
        try:
            since = self.checkpoint
            scan_started = self.clock()
            logger.debug("Checking for new comments since %s", since)
            try:
                comments = await self.store.find_comments_created_after(since)
            except Exception:
                logger.exception("Error in scheduled comment check; checkpoint held at %s", since)
                return SweepResult(status="failed", checkpoint=self.checkpoint)

            self.state = SweepState.DISPATCHING
            for comment in comments:
                try:
                    self.dispatcher.redrive(comment)
                except Exception:
                    logger.exception("Could not redrive comment %s", getattr(comment, "id", None))

            # Rows committed after the scan started fall after the new checkpoint.
            self.checkpoint = max(self.checkpoint, scan_started)
            if comments:
                logger.info("Found %d new comments since last check", len(comments))
            else:
                logger.debug("No new comments found since last check")
            return SweepResult(status="completed", found=len(comments), checkpoint=self.checkpoint)
        finally:
            self.state = SweepState.IDLE

    def start(self):
        """Start the periodic sweep loop"""
        if self.running:
            logger.warning("Sweeper already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run(), name="comment-sweeper")
        logger.info("Comment sweeper started (every %.0fs)", self.interval_seconds)

    async def stop(self):
        """Stop the loop and wait for it to unwind"""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
            self.task = None
        logger.info("Comment sweeper stopped")

    async def _run(self):
        loop = asyncio.get_running_loop()
        next_run = loop.time() + self.interval_seconds

        while self.running:
            try:
                await asyncio.sleep(max(0.0, next_run - loop.time()))
                next_run += self.interval_seconds
                await self.run_cycle()
            except asyncio.CancelledError:
                logger.info("Sweeper task cancelled")
                break
            except Exception as e:
                logger.error("Sweeper error: %s", e, exc_info=True)

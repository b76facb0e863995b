"""
Bounded pool of background asyncio tasks.

``submit`` never blocks the caller: it schedules a task immediately and the
task waits on the pool's semaphore before running, so at most
``max_workers`` submitted coroutines execute at once.  The pool keeps a
handle on every task it created, which is what makes ``join`` and a
draining ``shutdown`` possible.
"""
import asyncio
import functools
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class TaskPool:
    """Runs submitted coroutine functions with bounded concurrency."""

    def __init__(self, max_workers: int = 8):
        self.max_workers = max_workers
        self.running = False
        self._semaphore: asyncio.Semaphore | None = None
        self._tasks: set[asyncio.Task] = set()
        self._started: set[asyncio.Task] = set()

    def start(self):
        """Accept submissions; must be called from inside the event loop."""
        if self.running:
            logger.warning("Task pool already running")
            return

        # Primitives are created here so they bind to the running loop.
        self._semaphore = asyncio.Semaphore(self.max_workers)
        self._tasks = set()
        self._started = set()
        self.running = True
        logger.info("Task pool started (max_workers=%d)", self.max_workers)

    @property
    def in_flight(self) -> int:
        """Tasks submitted and not yet finished, queued ones included."""
        return len(self._tasks)

    def submit(
        self,
        func: Callable[..., Awaitable],
        *args,
        name: str | None = None,
        on_cancel: Callable[[], None] | None = None,
    ) -> bool:
        """
        Schedule ``func(*args)`` and return at once.

        *on_cancel* is called if the task is cancelled before ``func`` ever
        ran, e.g. while it waited for a worker at shutdown.  Returns False,
        and logs, when the pool is not accepting work.
        """
        if not self.running:
            logger.warning("Task pool is not running; rejected task %s", name or func)
            return False

        task = asyncio.create_task(self._run(func, args), name=name)
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._finished, on_cancel=on_cancel))
        return True

    async def _run(self, func: Callable[..., Awaitable], args: tuple):
        async with self._semaphore:
            self._started.add(asyncio.current_task())
            try:
                await func(*args)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unhandled error in background task %s", asyncio.current_task().get_name())

    def _finished(self, task: asyncio.Task, on_cancel: Callable[[], None] | None = None):
        self._tasks.discard(task)
        if task in self._started:
            self._started.discard(task)
            return
        if task.cancelled():
            logger.warning("Background task %s cancelled before it started", task.get_name())
            if on_cancel is not None:
                on_cancel()

    async def join(self):
        """Wait until every submitted task, including ones submitted meanwhile, is done."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def shutdown(self, drain_timeout: float = 0.0):
        """
        Stop accepting work, give in-flight tasks *drain_timeout* seconds to
        finish, then cancel whatever is left and wait for it to unwind.
        """
        if not self.running and not self._tasks:
            return

        self.running = False
        pending = set(self._tasks)
        if pending and drain_timeout > 0:
            _, pending = await asyncio.wait(pending, timeout=drain_timeout)

        if pending:
            logger.info("Cancelling %d unfinished background task(s)", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Task pool stopped")

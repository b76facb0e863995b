"""
Delivery interface for comment notifications.

The dispatcher only orchestrates; how long a delivery takes and whether it
can fail is the notifier's business.  ``LoggingNotifier`` is the simulated
transport used until a real one (email, push) is plugged in: it waits a
per-kind latency, optionally fails, and logs the delivery.
"""
import asyncio
import logging
import random
from abc import ABC, abstractmethod

from app.config import settings
from app.exceptions import DeliveryError
from app.schemas import Notification, NotificationKind

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Capability: send one notification."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver *notification*; raise ``DeliveryError`` on failure."""
        pass


class LoggingNotifier(Notifier):
    def __init__(
        self,
        delays: dict[NotificationKind, float] | None = None,
        failure_rate: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        self.delays = delays or {}
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls) -> "LoggingNotifier":
        return cls(
            delays={
                NotificationKind.AUTHOR_NOTICE: settings.NOTIFICATION_AUTHOR_DELAY_SECONDS,
                NotificationKind.COMMENTER_FANOUT: settings.NOTIFICATION_COMMENTERS_DELAY_SECONDS,
                NotificationKind.DELAYED_REDRIVE: settings.NOTIFICATION_REDRIVE_DELAY_SECONDS,
            },
            failure_rate=settings.NOTIFICATION_SIMULATED_FAILURE_RATE,
        )

    async def send(self, notification: Notification) -> None:
        delay = self.delays.get(notification.kind, 0.0)
        if delay > 0:
            await asyncio.sleep(delay)

        if self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            raise DeliveryError(notification.comment_id, notification.kind.value)

        logger.info(
            "Delivered %s for comment %s to %d recipient(s): %s",
            notification.kind.value,
            notification.comment_id,
            len(notification.recipients),
            notification.subject,
        )

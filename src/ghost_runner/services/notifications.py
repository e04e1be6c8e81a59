import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    TASK_STARTED = "task-started"
    TASK_COMPLETED = "task-completed"
    TASK_FAILED = "task-failed"
    FAILURE_RECORDED = "failure-recorded"
    FAILURES_CLEARED = "failures-cleared"
    INFO_DATA_UPDATED = "info-data-updated"
    INFO_DATA_CLEARED = "info-data-cleared"
    SCHEDULER_STATUS = "scheduler-status"
    SCHEDULE_UPDATED = "schedule-updated"
    PARSE_ERROR = "parse-error"
    LOG = "log"


Subscriber = Callable[[str, dict[str, Any]], Awaitable[None]]


class NotificationHub:
    """Fan-out of named events to every registered subscriber.

    A failing subscriber is logged and skipped; it never affects delivery to
    the others or the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, callback: Subscriber, subscriber_id: str | None = None) -> str:
        subscriber_id = subscriber_id or str(uuid.uuid4())
        async with self._lock:
            self._subscribers[subscriber_id] = callback
        logger.debug(f"Subscribed to notifications: {subscriber_id}")
        return subscriber_id

    async def unsubscribe(self, subscriber_id: str) -> None:
        async with self._lock:
            if self._subscribers.pop(subscriber_id, None) is not None:
                logger.debug(f"Unsubscribed from notifications: {subscriber_id}")

    async def subscriber_count(self) -> int:
        async with self._lock:
            return len(self._subscribers)

    async def publish(self, event: NotificationEvent, payload: dict[str, Any] | None = None) -> None:
        async with self._lock:
            subscribers = list(self._subscribers.items())
        for subscriber_id, callback in subscribers:
            try:
                await callback(event.value, payload or {})
            except Exception as e:
                logger.warning(f"Notification subscriber {subscriber_id} failed on {event.value}: {e}")

    async def log(self, message: str, level: str = "info") -> None:
        """Publish a human-readable log line to observers."""
        await self.publish(NotificationEvent.LOG, {"message": message, "level": level})


async def log_notification(event: str, payload: dict[str, Any]) -> None:
    """Subscriber that writes notifications to the process log.

    Used where no dashboard is attached (the standalone scheduler process),
    so its output carries the same events a dashboard would see.
    """
    if event == NotificationEvent.LOG.value:
        message = payload.get("message", "")
        if payload.get("level") == "error":
            logger.error(message)
        else:
            logger.info(message)
    else:
        logger.debug(f"{event}: {payload}")

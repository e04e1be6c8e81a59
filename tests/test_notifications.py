"""Tests for the NotificationHub."""

from unittest.mock import AsyncMock

from ghost_runner.services.notifications import NotificationEvent, NotificationHub


class TestNotificationHub:
    """Tests for publish/subscribe."""

    async def test_publish_reaches_every_subscriber(self):
        hub = NotificationHub()
        first, second = AsyncMock(), AsyncMock()
        await hub.subscribe(first)
        await hub.subscribe(second)

        await hub.publish(NotificationEvent.TASK_STARTED, {"taskName": "a"})

        first.assert_awaited_once_with("task-started", {"taskName": "a"})
        second.assert_awaited_once_with("task-started", {"taskName": "a"})

    async def test_failing_subscriber_does_not_block_others(self):
        hub = NotificationHub()
        broken = AsyncMock(side_effect=RuntimeError("socket closed"))
        healthy = AsyncMock()
        await hub.subscribe(broken, "broken")
        await hub.subscribe(healthy, "healthy")

        await hub.publish(NotificationEvent.SCHEDULER_STATUS, {"running": True})

        healthy.assert_awaited_once()

    async def test_unsubscribe(self):
        hub = NotificationHub()
        callback = AsyncMock()
        subscriber_id = await hub.subscribe(callback)

        await hub.unsubscribe(subscriber_id)
        await hub.publish(NotificationEvent.LOG, {"message": "hi"})

        callback.assert_not_awaited()
        assert await hub.subscriber_count() == 0

    async def test_log_helper(self, notifier, recorder):
        await notifier.log("[Task: a] boom", "error")

        assert recorder.named("log") == [{"message": "[Task: a] boom", "level": "error"}]

"""Scheduler service turning schedule entries into timed task runs."""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from croniter import croniter

from ghost_runner.errors import ScheduleFormatError, TaskNotFoundError
from ghost_runner.models.records import NextRun, RunHandle, ScheduleEntry, TriggerKind
from ghost_runner.schedule_store import ScheduleRepository
from ghost_runner.services.notifications import NotificationEvent, NotificationHub
from ghost_runner.services.orchestrator import ExecutionOrchestrator
from ghost_runner.services.sleep_guard import SleepGuard

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return datetime.now().astimezone()


def parse_execute_at(value: str | None) -> datetime | None:
    """Parse a one-shot timestamp; naive values are taken as local time.

    Returns:
        An aware datetime, or None if the value is not an ISO 8601 timestamp
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    return parsed.astimezone() if parsed.tzinfo is None else parsed


def is_valid_cron(expression: object) -> bool:
    """True for a cron expression croniter accepts; the schedule file may hold any JSON value."""
    return isinstance(expression, str) and bool(expression) and croniter.is_valid(expression)


def next_fire_time(entry: ScheduleEntry, now: datetime) -> datetime | None:
    """When an entry next fires after ``now``, or None if it never will."""
    if not entry.enabled or not entry.task:
        return None
    if entry.is_cron:
        if not is_valid_cron(entry.cron):
            return None
        return croniter(entry.cron, now).get_next(datetime)
    if entry.is_one_shot:
        execute_at = parse_execute_at(entry.execute_at)
        if execute_at is not None and execute_at > now:
            return execute_at
    return None


def has_pending_work(entries: Sequence[ScheduleEntry], now: datetime | None = None) -> bool:
    """True while any entry will still fire: a valid cron or a future one-shot."""
    now = now or local_now()
    return any(next_fire_time(entry, now) is not None for entry in entries)


def compute_next_run(entries: Sequence[ScheduleEntry], now: datetime | None = None) -> NextRun | None:
    """The nearest future run across all entries."""
    now = now or local_now()
    nearest: NextRun | None = None
    for entry in entries:
        fire_at = next_fire_time(entry, now)
        if fire_at is None:
            continue
        delay_ms = int((fire_at - now).total_seconds() * 1000)
        if nearest is None or delay_ms < nearest.delay_ms:
            nearest = NextRun(task=entry.task, next_run=fire_at, delay_ms=delay_ms)
    return nearest


class SchedulerService:
    """Runs cron and one-shot schedule entries through the orchestrator.

    Each valid entry gets its own timer task. Cron entries repeat until the
    scheduler stops; one-shot entries fire once (immediately if already past
    due) and are removed from the persisted schedule right after launch.
    Invalid entries are skipped with a warning and left in place.

    While any entry is still pending the optional sleep guard is kept
    running; the condition is re-evaluated after every triggered run.
    """

    def __init__(
        self,
        repository: ScheduleRepository,
        orchestrator: ExecutionOrchestrator,
        sleep_guard: SleepGuard | None = None,
        notifier: NotificationHub | None = None,
    ) -> None:
        self._repository = repository
        self._orchestrator = orchestrator
        self._sleep_guard = sleep_guard
        self._notifier = notifier
        self._entries: list[ScheduleEntry] = []
        self._timers: set[asyncio.Task[None]] = set()
        self._followups: set[asyncio.Task[None]] = set()
        self._guard_lock = asyncio.Lock()
        self._running = False

    def is_running(self) -> bool:
        return self._running

    @property
    def scheduled_entries(self) -> list[ScheduleEntry]:
        return list(self._entries)

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "scheduledEntries": len(self._entries),
            "sleepGuard": bool(self._sleep_guard and self._sleep_guard.is_running()),
        }

    async def start(self) -> None:
        """Load the schedule and arm a timer for every valid entry.

        Raises:
            ScheduleFormatError: If the persisted schedule is unreadable
        """
        if self._running:
            return
        entries = await self._repository.list_entries()
        logger.info(f"Found {len(entries)} entries in schedule")

        await self.update_sleep_guard(entries)

        now = local_now()
        for entry in entries:
            if self._schedule_entry(entry, now):
                self._entries.append(entry)

        self._running = True
        logger.info(f"Scheduler started with {len(self._entries)} active entries")
        await self._publish_status()

    async def stop(self) -> None:
        """Cancel every pending timer and release the sleep guard."""
        tasks = [*self._timers, *self._followups]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._timers.clear()
        self._followups.clear()
        self._entries.clear()

        if self._sleep_guard is not None:
            async with self._guard_lock:
                await self._sleep_guard.stop()

        was_running = self._running
        self._running = False
        if was_running:
            logger.info("Scheduler stopped")
            await self._publish_status()

    async def reload(self) -> None:
        """Re-read the schedule, replacing every armed timer."""
        await self.stop()
        await self.start()

    async def next_run(self, now: datetime | None = None) -> NextRun | None:
        return compute_next_run(await self._repository.list_entries(), now)

    def _schedule_entry(self, entry: ScheduleEntry, now: datetime) -> bool:
        if not entry.task:
            logger.warning(f"Skipping invalid entry (missing task name): {entry.to_dict()}")
            return False
        if not entry.enabled:
            logger.info(f"Skipping disabled entry for task '{entry.task}'")
            return False

        if entry.is_cron:
            if not is_valid_cron(entry.cron):
                logger.warning(f"Invalid cron expression for task '{entry.task}': {entry.cron}")
                return False
            self._track(self._timers, self._cron_loop(entry))
            logger.info(f"Scheduled recurring task '{entry.task}' with cron '{entry.cron}'")
            return True

        if entry.is_one_shot:
            execute_at = parse_execute_at(entry.execute_at)
            if execute_at is None:
                logger.warning(
                    f"Invalid executeAt for task '{entry.task}': {entry.execute_at}"
                )
                return False
            delay = max(0.0, (execute_at - now).total_seconds())
            if delay == 0:
                logger.info(
                    f"One-time task '{entry.task}' was due at {entry.execute_at}, running now"
                )
            else:
                logger.info(f"Scheduled one-time task '{entry.task}' at {execute_at.isoformat()}")
            self._track(self._timers, self._fire_once(entry, delay))
            return True

        logger.warning(f"Skipping entry for task '{entry.task}': needs either cron or executeAt")
        return False

    def _track(self, bucket: set[asyncio.Task[None]], coro: Any) -> None:
        task = asyncio.create_task(coro)
        bucket.add(task)
        task.add_done_callback(bucket.discard)

    async def _cron_loop(self, entry: ScheduleEntry) -> None:
        last_due: datetime | None = None
        while True:
            now = local_now()
            # Never compute from before the last due time, so a timer that
            # wakes early cannot fire the same slot twice
            base = max(now, last_due) if last_due else now
            due = croniter(entry.cron, base).get_next(datetime)
            await asyncio.sleep(max(0.0, (due - now).total_seconds()))
            last_due = due
            try:
                await self._trigger(entry, TriggerKind.CRON)
            except Exception as e:
                logger.exception(f"Error triggering task '{entry.task}': {e}")

    async def _fire_once(self, entry: ScheduleEntry, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self._trigger(entry, TriggerKind.ONESHOT)
        except Exception as e:
            logger.exception(f"Error triggering task '{entry.task}': {e}")
        finally:
            if entry in self._entries:
                self._entries.remove(entry)

    async def _trigger(self, entry: ScheduleEntry, kind: TriggerKind) -> None:
        logger.info(f"Triggering task '{entry.task}' ({kind.value})")
        handle: RunHandle | None = None
        try:
            handle = await self._orchestrator.run_now(entry.task, kind)
        except TaskNotFoundError as e:
            logger.error(f"Scheduled task '{entry.task}' cannot run: {e}")

        if kind is TriggerKind.ONESHOT and entry.execute_at:
            # Removed even when the task is unknown, otherwise it would
            # fire again on every restart
            try:
                removed = await self._repository.remove_entry(entry.task, entry.execute_at)
            except ScheduleFormatError as e:
                logger.warning(f"Could not remove one-time task '{entry.task}': {e}")
            else:
                if removed:
                    logger.info(f"Removed one-time task '{entry.task}' from schedule")

        if handle is not None:
            self._track(self._followups, self._after_run(handle))
        else:
            await self.update_sleep_guard()

    async def _after_run(self, handle: RunHandle) -> None:
        await self._orchestrator.wait(handle)
        await self.update_sleep_guard()

    async def update_sleep_guard(self, entries: Sequence[ScheduleEntry] | None = None) -> bool:
        """Start or stop the sleep guard to match the pending work.

        Returns:
            Whether any entry is still pending
        """
        if entries is None:
            try:
                entries = await self._repository.list_entries()
            except ScheduleFormatError as e:
                logger.warning(f"Keeping sleep guard state, schedule unreadable: {e}")
                return bool(self._sleep_guard and self._sleep_guard.is_running())

        pending = has_pending_work(entries)
        if self._sleep_guard is None:
            return pending

        async with self._guard_lock:
            if pending and not self._sleep_guard.is_running():
                await self._sleep_guard.start()
            elif not pending and self._sleep_guard.is_running():
                logger.info("No pending scheduled tasks remain")
                await self._sleep_guard.stop()
        return pending

    async def _publish_status(self) -> None:
        if self._notifier is not None:
            await self._notifier.publish(NotificationEvent.SCHEDULER_STATUS, self.status())

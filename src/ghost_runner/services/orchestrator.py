"""Single owner of "run this task now" requests."""

import asyncio
import logging
from datetime import datetime, timezone

from ghost_runner.errors import GhostRunnerError, TaskNotFoundError, WorkerSpawnError
from ghost_runner.models.events import (
    Completed,
    CompletedWithData,
    Failed,
    LogLine,
    ParseError,
    Started,
    WorkerEvent,
    WorkerExited,
)
from ghost_runner.models.records import InfoGatheringResult, RunHandle, TriggerKind
from ghost_runner.services.failure_store import FailureStore
from ghost_runner.services.info_cache import InfoGatheringCache
from ghost_runner.services.notifications import NotificationEvent, NotificationHub
from ghost_runner.services.supervisor import WorkerRun, WorkerSupervisor
from ghost_runner.task_repository import TaskRepository, validate_task_name

logger = logging.getLogger(__name__)


class ExecutionOrchestrator:
    """Runs tasks through the supervisor and acts on their events.

    Each run gets its own consumer, so one worker's events are handled in
    the order it emitted them; there is no ordering across workers and no
    limit on concurrent runs. Task failures and store errors are logged and
    published, never raised; only an unknown task name reaches the caller.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        supervisor: WorkerSupervisor,
        failures: FailureStore,
        info_cache: InfoGatheringCache,
        notifier: NotificationHub,
    ) -> None:
        self._tasks = tasks
        self._supervisor = supervisor
        self._failures = failures
        self._info_cache = info_cache
        self._notifier = notifier
        self._runs: dict[int, RunHandle] = {}
        self._consumers: dict[int, asyncio.Task[None]] = {}

    def active_runs(self) -> list[RunHandle]:
        return list(self._runs.values())

    async def run_now(
        self, task_name: str, trigger: TriggerKind = TriggerKind.MANUAL
    ) -> RunHandle | None:
        """Start a task and begin consuming its events.

        Returns:
            The run handle, or None if the worker process could not be spawned
            (logged and published, not recorded as a task failure)

        Raises:
            TaskNotFoundError: If the task does not exist; nothing is spawned
        """
        try:
            validate_task_name(task_name)
            if not await self._tasks.exists(task_name):
                raise TaskNotFoundError(task_name)
        except TaskNotFoundError as e:
            await self._notifier.log(str(e), "error")
            raise

        try:
            run = await self._supervisor.launch(task_name, trigger=trigger)
        except WorkerSpawnError as e:
            await self._notifier.log(
                f"[Task: {task_name} SYSTEM ERROR] Failed to spawn process: {e.cause}", "error"
            )
            return None

        handle = run.handle
        self._runs[handle.process_id] = handle
        self._consumers[handle.process_id] = asyncio.create_task(self._consume(run))
        return handle

    async def wait(self, handle: RunHandle) -> None:
        """Wait until every event of a run has been handled."""
        consumer = self._consumers.get(handle.process_id)
        if consumer is not None:
            await asyncio.shield(consumer)

    async def _consume(self, run: WorkerRun) -> None:
        handle = run.handle
        try:
            async for event in run.events():
                try:
                    await self.on_event(event, handle)
                except Exception as e:
                    logger.exception(f"[Task: {handle.task_name}] error handling {event!r}: {e}")
        finally:
            self._runs.pop(handle.process_id, None)
            self._consumers.pop(handle.process_id, None)

    async def on_event(self, event: WorkerEvent, handle: RunHandle) -> None:
        """Apply one worker event to the stores and notify observers.

        Failures and results are keyed by the task the run was launched for,
        whatever name the worker writes into its status payloads.
        """
        task_name = handle.task_name
        if (
            isinstance(event, (Started, Completed, CompletedWithData, Failed))
            and event.task_name
            and event.task_name != task_name
        ):
            logger.warning(
                f"[Task: {task_name}] worker reported task name '{event.task_name}'; "
                "keeping the launched name"
            )

        if isinstance(event, LogLine):
            if event.stream == "stderr":
                await self._notifier.log(f"[Task: {task_name} ERROR] {event.text}", "error")
            else:
                await self._notifier.log(f"[Task: {task_name}] {event.text}")

        elif isinstance(event, ParseError):
            logger.warning(f"[Task: {task_name}] unreadable status line ({event.reason}): {event.line}")
            await self._notifier.publish(
                NotificationEvent.PARSE_ERROR,
                {"taskName": task_name, "line": event.line, "reason": event.reason},
            )

        elif isinstance(event, Started):
            await self._notifier.publish(
                NotificationEvent.TASK_STARTED,
                {
                    "taskName": task_name,
                    "timestamp": event.timestamp or _now_iso(),
                    "trigger": handle.trigger.value,
                    "processId": handle.process_id,
                },
            )

        elif isinstance(event, Completed):
            await self._notifier.publish(
                NotificationEvent.TASK_COMPLETED,
                {
                    "taskName": task_name,
                    "timestamp": event.timestamp or _now_iso(),
                    "durationMs": event.duration_ms,
                },
            )
            await self._notifier.log(f"[Task: {task_name}] ✓ Completed successfully")

        elif isinstance(event, CompletedWithData):
            await self._store_result(event, task_name)
            await self._notifier.publish(
                NotificationEvent.TASK_COMPLETED,
                {
                    "taskName": task_name,
                    "timestamp": event.timestamp or _now_iso(),
                    "hasData": True,
                },
            )
            await self._notifier.log(f"[Task: {task_name}] ✓ Completed with data")

        elif isinstance(event, Failed):
            await self._record_failure(event, task_name)

        elif isinstance(event, WorkerExited):
            logger.info(f"Task '{task_name}' process exited with code {event.return_code}")
            await self._notifier.log(
                f"[Task: {task_name}] process exited with code {event.return_code}"
            )

    async def _store_result(self, event: CompletedWithData, task_name: str) -> None:
        result = InfoGatheringResult.from_event(event, task_name, datetime.now(timezone.utc))
        try:
            stored = await self._info_cache.upsert(result)
        except GhostRunnerError as e:
            logger.warning(f"[Task: {task_name}] result not stored: {e}")
            return
        await self._notifier.publish(NotificationEvent.INFO_DATA_UPDATED, stored.to_dict())

    async def _record_failure(self, event: Failed, task_name: str) -> None:
        record = await self._failures.record(task_name, event.error_type, event.context)
        # Repeats only bump the count; observers are told about new records
        if record.is_new:
            await self._notifier.publish(NotificationEvent.FAILURE_RECORDED, record.to_dict())

        message = event.error_message or "Unknown error"
        await self._notifier.publish(
            NotificationEvent.TASK_FAILED,
            {
                "taskName": task_name,
                "errorType": event.error_type.value,
                "errorMessage": message,
                "context": event.context,
                "timestamp": event.timestamp or _now_iso(),
            },
        )
        await self._notifier.log(f"[Task: {task_name}] ✗ Failed: {message}", "error")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

"""Long-lived scheduler process: ``ghost-runner-scheduler``.

Runs every schedule entry through its own orchestrator and stores until it
receives SIGINT or SIGTERM. Notifications are written to the log, which is
also appended to the scheduler log file.
"""

import asyncio
import logging
import signal
import sys
from datetime import timedelta

from ghost_runner.config import Settings
from ghost_runner.db import create_engine, create_session_factory, create_tables
from ghost_runner.errors import ScheduleFormatError
from ghost_runner.schedule_store import JsonScheduleRepository
from ghost_runner.services import (
    ExecutionOrchestrator,
    FailureStore,
    InfoGatheringCache,
    NotificationHub,
    SchedulerService,
    SleepGuard,
    WorkerSupervisor,
    log_notification,
)
from ghost_runner.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def setup_file_logging(settings: Settings) -> None:
    handler = logging.FileHandler(settings.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logging.getLogger().addHandler(handler)


async def run_scheduler(settings: Settings) -> int:
    """Run the scheduler until a stop signal arrives.

    Returns:
        The process exit code
    """
    schedule_repository = JsonScheduleRepository(settings.schedule_path)
    if not schedule_repository.exists():
        logger.error(f"{settings.schedule_path.name} not found.")
        return 1

    engine = create_engine(settings.database_url, echo=settings.db_echo)
    session_factory = create_session_factory(engine)
    await create_tables(engine)

    notifier = NotificationHub()
    await notifier.subscribe(log_notification, "log")

    orchestrator = ExecutionOrchestrator(
        TaskRepository(settings.tasks_path),
        WorkerSupervisor(
            python=settings.worker_python,
            cwd=settings.root_dir,
            tasks_dir=settings.tasks_path,
        ),
        FailureStore(session_factory, dedup_window=timedelta(hours=settings.failure_dedup_hours)),
        InfoGatheringCache(session_factory),
        notifier,
    )
    scheduler = SchedulerService(
        schedule_repository,
        orchestrator,
        sleep_guard=SleepGuard(settings.sleep_guard_command),
        notifier=notifier,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await scheduler.start()
    except ScheduleFormatError as e:
        logger.error(str(e))
        await engine.dispose()
        return 1

    logger.info("Scheduler is running. Press Ctrl+C to exit.")
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        await scheduler.stop()
        await engine.dispose()
    return 0


def main() -> None:
    """Entry point for the scheduler process."""
    settings = Settings()
    setup_file_logging(settings)
    sys.exit(asyncio.run(run_scheduler(settings)))


if __name__ == "__main__":
    main()

"""Ghost Runner dashboard FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

from fastapi import FastAPI

from ghost_runner.config import Settings
from ghost_runner.db import create_engine, create_session_factory, create_tables
from ghost_runner.routes import (
    failures_router,
    info_gathering_router,
    scheduler_router,
    tasks_router,
    websocket_router,
)
from ghost_runner.schedule_store import JsonScheduleRepository
from ghost_runner.services import (
    ExecutionOrchestrator,
    FailureStore,
    InfoGatheringCache,
    NotificationHub,
    SchedulerProcess,
    WorkerSupervisor,
)
from ghost_runner.services.scheduler_process import default_scheduler_command
from ghost_runner.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()

    engine = create_engine(settings.database_url, echo=settings.db_echo)
    session_factory = create_session_factory(engine)

    # Initialize core services
    notifier = NotificationHub()
    task_repository = TaskRepository(settings.tasks_path)
    failure_store = FailureStore(
        session_factory, dedup_window=timedelta(hours=settings.failure_dedup_hours)
    )
    info_cache = InfoGatheringCache(session_factory)
    supervisor = WorkerSupervisor(
        python=settings.worker_python,
        cwd=settings.root_dir,
        tasks_dir=settings.tasks_path,
    )
    orchestrator = ExecutionOrchestrator(
        task_repository, supervisor, failure_store, info_cache, notifier
    )
    schedule_repository = JsonScheduleRepository(settings.schedule_path)

    # The scheduler runs in its own process and reads the same settings
    scheduler_process = SchedulerProcess(
        notifier,
        command=default_scheduler_command(settings.worker_python),
        cwd=settings.root_dir,
        env=settings.to_env(),
        restart_delay=settings.scheduler_restart_delay,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Ghost Runner starting up")

        await create_tables(engine)
        logger.info("Database tables created/verified")

        yield

        await scheduler_process.stop()
        await engine.dispose()
        logger.info("Ghost Runner shutting down")

    app = FastAPI(
        title="Ghost Runner",
        description="Dashboard API for scheduled browser-automation tasks",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store services in app.state for dependency injection
    app.state.settings = settings
    app.state.notifier = notifier
    app.state.task_repository = task_repository
    app.state.failure_store = failure_store
    app.state.info_cache = info_cache
    app.state.orchestrator = orchestrator
    app.state.schedule_repository = schedule_repository
    app.state.scheduler_process = scheduler_process

    # Include routers
    app.include_router(tasks_router)
    app.include_router(failures_router)
    app.include_router(info_gathering_router)
    app.include_router(scheduler_router)
    app.include_router(websocket_router)

    return app

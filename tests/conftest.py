"""Pytest configuration and fixtures for ghost-runner tests."""

import sys
import textwrap
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ghost_runner.db.models import Base
from ghost_runner.schedule_store import JsonScheduleRepository
from ghost_runner.services import (
    ExecutionOrchestrator,
    FailureStore,
    InfoGatheringCache,
    NotificationHub,
    WorkerSupervisor,
)
from ghost_runner.task_repository import TaskRepository

SRC_DIR = Path(__file__).resolve().parent.parent / "src"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session_factory(db_engine):
    """Create a session factory for testing."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def failure_store(session_factory):
    return FailureStore(session_factory)


@pytest.fixture
def info_cache(session_factory):
    return InfoGatheringCache(session_factory)


class RecordingSubscriber:
    """Collects every notification published to a hub."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]

    def logs(self) -> list[str]:
        return [payload["message"] for payload in self.named("log")]


@pytest.fixture
def notifier():
    return NotificationHub()


@pytest.fixture
async def recorder(notifier):
    """Subscribe a recorder to the notifier fixture."""
    subscriber = RecordingSubscriber()
    await notifier.subscribe(subscriber, "recorder")
    return subscriber


@pytest.fixture
def tasks_dir(tmp_path):
    """A tasks directory with public/ and private/ subdirectories."""
    root = tmp_path / "tasks"
    (root / "public").mkdir(parents=True)
    (root / "private").mkdir()
    return root


@pytest.fixture
def write_task(tasks_dir):
    """Write a task script into the tasks directory."""

    def _write(name: str, body: str, subdir: str = "public") -> Path:
        path = tasks_dir / subdir / f"{name}.py" if subdir else tasks_dir / f"{name}.py"
        path.write_text(textwrap.dedent(body))
        return path

    return _write


@pytest.fixture
def worker_env():
    """Environment that lets worker subprocesses import ghost_runner from src/."""
    return {"PYTHONPATH": str(SRC_DIR)}


@pytest.fixture
def supervisor(tasks_dir, worker_env):
    return WorkerSupervisor(python=sys.executable, tasks_dir=tasks_dir, env=worker_env)


@pytest.fixture
def orchestrator(tasks_dir, supervisor, failure_store, info_cache, notifier):
    return ExecutionOrchestrator(
        TaskRepository(tasks_dir), supervisor, failure_store, info_cache, notifier
    )


@pytest.fixture
def schedule_path(tmp_path):
    return tmp_path / "schedule.json"


@pytest.fixture
def schedule_repository(schedule_path):
    return JsonScheduleRepository(schedule_path)

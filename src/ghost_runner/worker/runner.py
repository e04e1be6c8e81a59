"""Runs one task script inside a worker process.

A task is a Python module in the tasks directory that defines ``run``::

    METADATA = {"type": "info-gathering", "category": "Weather"}

    async def run(context):
        ...
        return {"temperature": 21}

``run`` receives a :class:`TaskContext` and may be sync or async. A task
whose ``METADATA["type"]`` is ``"info-gathering"``, or that returns a
:class:`TaskData`, completes with data; any other task completes plainly.
Raising reports a failure, with structured context when the exception is a
:class:`~ghost_runner.worker.errors.TaskError`.
"""

import importlib.util
import inspect
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

from ghost_runner.models.events import DataMetadata, DataType
from ghost_runner.task_repository import TaskRepository
from ghost_runner.worker.reporter import TaskReporter

logger = logging.getLogger(__name__)

INFO_GATHERING_TYPE = "info-gathering"


@dataclass
class TaskContext:
    """What a running task can see of its environment."""

    task_name: str
    tasks_dir: Path
    logger: logging.Logger
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskData:
    """A task's returned payload plus how the dashboard should show it."""

    data: Any
    category: str | None = None
    display_name: str | None = None
    data_type: DataType = "key-value"
    ttl_seconds: float | None = None
    rendered_by: str | None = None

    def to_metadata(self) -> DataMetadata:
        return DataMetadata(
            category=self.category,
            display_name=self.display_name,
            data_type=self.data_type,
            ttl_seconds=self.ttl_seconds,
            rendered_by=self.rendered_by,
        )

    @classmethod
    def from_module_metadata(cls, data: Any, metadata: dict[str, Any]) -> "TaskData":
        return cls(
            data=data,
            category=metadata.get("category"),
            display_name=metadata.get("displayName"),
            data_type=metadata.get("dataType", "key-value"),
            ttl_seconds=metadata.get("ttlSeconds"),
            rendered_by=metadata.get("renderedBy"),
        )


def load_task_module(task_name: str, path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"ghost_runner_task_{task_name}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load task module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def run_task(
    task_name: str,
    tasks_dir: Path,
    reporter: TaskReporter | None = None,
    options: dict[str, Any] | None = None,
) -> int:
    """Run a task and report its lifecycle.

    Returns:
        The process exit code: 0 on success, 1 on failure
    """
    reporter = reporter or TaskReporter(task_name)
    start = time.monotonic()
    try:
        definition = await TaskRepository(tasks_dir).find_by_name(task_name)
        if definition is None:
            raise FileNotFoundError(f"Task '{task_name}' not found in {tasks_dir}")

        module = load_task_module(task_name, definition.path)
        run = getattr(module, "run", None)
        if not callable(run):
            raise AttributeError(f"Task '{task_name}' does not define run(context)")

        reporter.started()
        logger.info(f"Running task: {task_name}")
        context = TaskContext(
            task_name=task_name,
            tasks_dir=tasks_dir,
            logger=logging.getLogger(f"ghost_runner.tasks.{task_name}"),
            options=options or {},
        )
        result = run(context)
        if inspect.isawaitable(result):
            result = await result

        metadata = getattr(module, "METADATA", None) or {}
        if isinstance(result, TaskData):
            reporter.completed_with_data(result.data, result.to_metadata())
        elif metadata.get("type") == INFO_GATHERING_TYPE:
            task_data = TaskData.from_module_metadata(result, metadata)
            reporter.completed_with_data(task_data.data, task_data.to_metadata())
        else:
            reporter.completed(duration_ms=int((time.monotonic() - start) * 1000))
    except Exception as e:
        logger.error(f"Task '{task_name}' failed: {e}")
        reporter.failed(e)
        return 1
    return 0

"""Discovery of runnable task scripts on disk."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ghost_runner.errors import InvalidTaskNameError

logger = logging.getLogger(__name__)

MAX_TASK_NAME_LENGTH = 100
_TASK_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class TaskType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    ROOT = "root"


@dataclass(frozen=True)
class TaskDefinition:
    name: str
    type: TaskType
    path: Path


def validate_task_name(task_name: object) -> str:
    """Return the name if it is a safe task identifier, else raise.

    Only letters, digits, hyphens and underscores are allowed, so a name can
    never escape the tasks directory or smuggle arguments into a command line.
    """
    if not isinstance(task_name, str):
        raise InvalidTaskNameError(str(task_name), "task name must be a string")
    if not 0 < len(task_name) < MAX_TASK_NAME_LENGTH:
        raise InvalidTaskNameError(
            task_name, f"must be between 1 and {MAX_TASK_NAME_LENGTH - 1} characters"
        )
    if not _TASK_NAME_RE.match(task_name):
        raise InvalidTaskNameError(
            task_name, "only letters, numbers, hyphens, and underscores are allowed"
        )
    return task_name


def is_valid_task_name(task_name: object) -> bool:
    try:
        validate_task_name(task_name)
    except InvalidTaskNameError:
        return False
    return True


class TaskRepository:
    """Finds task scripts under the tasks directory.

    Tasks are ``*.py`` files in the directory itself, ``private/`` or
    ``public/``. When the same name exists in several places, public wins over
    private, which wins over the root directory.
    """

    def __init__(self, tasks_dir: Path) -> None:
        self._tasks_dir = tasks_dir

    @property
    def tasks_dir(self) -> Path:
        return self._tasks_dir

    def _scan(self, directory: Path, task_type: TaskType) -> list[TaskDefinition]:
        if not directory.is_dir():
            return []
        return [
            TaskDefinition(name=path.stem, type=task_type, path=path)
            for path in sorted(directory.glob("*.py"))
            if not path.name.startswith("_") and is_valid_task_name(path.stem)
        ]

    def find_all_sync(self) -> list[TaskDefinition]:
        tasks: dict[str, TaskDefinition] = {}
        for directory, task_type in (
            (self._tasks_dir, TaskType.ROOT),
            (self._tasks_dir / "private", TaskType.PRIVATE),
            (self._tasks_dir / "public", TaskType.PUBLIC),
        ):
            for task in self._scan(directory, task_type):
                tasks[task.name] = task
        return sorted(tasks.values(), key=lambda t: t.name)

    def find_by_name_sync(self, name: str) -> TaskDefinition | None:
        if not is_valid_task_name(name):
            return None
        return next((t for t in self.find_all_sync() if t.name == name), None)

    async def find_all(self) -> list[TaskDefinition]:
        """Discover every task, applying directory precedence."""
        return self.find_all_sync()

    async def find_by_name(self, name: str) -> TaskDefinition | None:
        """Find a task by name. Unsafe names never resolve."""
        return self.find_by_name_sync(name)

    async def exists(self, name: str) -> bool:
        return await self.find_by_name(name) is not None

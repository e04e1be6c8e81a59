"""Exception types raised across the orchestration core."""


class GhostRunnerError(Exception):
    """Base class for ghost-runner errors."""


class TaskNotFoundError(GhostRunnerError):
    """Raised when a run is requested for a task that does not exist."""

    def __init__(self, task_name: str, message: str | None = None) -> None:
        super().__init__(message or f"Task '{task_name}' not found.")
        self.task_name = task_name


class InvalidTaskNameError(TaskNotFoundError):
    """Raised when a task name is not a safe identifier.

    Subclasses TaskNotFoundError so callers rejecting unknown tasks also
    reject names that can never resolve to a task file.
    """

    def __init__(self, task_name: str, reason: str) -> None:
        super().__init__(task_name, f"Invalid task name '{task_name}': {reason}")
        self.reason = reason


class WorkerSpawnError(GhostRunnerError):
    """Raised when a worker process cannot be started.

    This is a supervisor-level error and is never recorded as a task failure.
    """

    def __init__(self, task_name: str, cause: OSError) -> None:
        super().__init__(f"Failed to spawn worker for task '{task_name}': {cause}")
        self.task_name = task_name
        self.cause = cause


class ScheduleFormatError(GhostRunnerError):
    """Raised when the persisted schedule cannot be read as a list of entries."""

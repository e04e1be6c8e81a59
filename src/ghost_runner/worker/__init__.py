from .errors import ElementNotFoundError, NavigationFailureError, TaskError, TaskTimeoutError
from .reporter import TaskReporter
from .runner import TaskContext, TaskData, run_task

__all__ = [
    "ElementNotFoundError",
    "NavigationFailureError",
    "TaskError",
    "TaskTimeoutError",
    "TaskReporter",
    "TaskContext",
    "TaskData",
    "run_task",
]

import sys
import traceback
from datetime import datetime, timezone
from typing import Any, TextIO

from ghost_runner import protocol
from ghost_runner.models.events import (
    Completed,
    CompletedWithData,
    DataMetadata,
    ErrorType,
    Failed,
    Started,
    StatusEvent,
)
from ghost_runner.worker.errors import TaskError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TaskReporter:
    """Writes a task's status events to stdout as protocol lines.

    Every line is flushed immediately so the supervisor sees events while
    the task is still running.
    """

    def __init__(self, task_name: str, stream: TextIO | None = None) -> None:
        self.task_name = task_name
        self._stream = stream

    def emit(self, event: StatusEvent) -> None:
        stream = self._stream or sys.stdout
        stream.write(protocol.encode(event) + "\n")
        stream.flush()

    def started(self) -> None:
        self.emit(Started(task_name=self.task_name))

    def completed(self, duration_ms: int | None = None) -> None:
        self.emit(Completed(task_name=self.task_name, duration_ms=duration_ms, timestamp=_now_iso()))

    def completed_with_data(self, data: Any, metadata: DataMetadata | None = None) -> None:
        self.emit(
            CompletedWithData(
                task_name=self.task_name,
                data=data,
                metadata=metadata or DataMetadata(),
                timestamp=_now_iso(),
            )
        )

    def failed(self, error: BaseException) -> None:
        if isinstance(error, TaskError):
            error_type = error.error_type
            context = error.to_dict()
        else:
            error_type = ErrorType.UNKNOWN
            context = {
                "name": type(error).__name__,
                "message": str(error),
                "stack": "".join(traceback.format_exception(error)),
            }
        context["errorMessage"] = str(error) or type(error).__name__
        self.emit(
            Failed(
                task_name=self.task_name,
                error_type=error_type,
                context=context,
                timestamp=_now_iso(),
            )
        )

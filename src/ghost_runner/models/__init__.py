from .api import (
    ClearedResponse,
    MessageResponse,
    NextRunResponse,
    RunTaskResponse,
    ScheduleItem,
    ScheduleResponse,
    SchedulerStatusResponse,
    ScheduleUpdate,
    SuccessResponse,
    TaskListResponse,
    TaskResponse,
)
from .events import (
    Completed,
    CompletedWithData,
    DataMetadata,
    ErrorType,
    Failed,
    LogLine,
    ParseError,
    Started,
    StatusEvent,
    StatusKind,
    WorkerEvent,
    WorkerExited,
)
from .records import (
    FailureRecord,
    InfoGatheringResult,
    NextRun,
    RunHandle,
    ScheduleEntry,
    TriggerKind,
)

__all__ = [
    # API schemas
    "ClearedResponse",
    "MessageResponse",
    "NextRunResponse",
    "RunTaskResponse",
    "ScheduleItem",
    "ScheduleResponse",
    "SchedulerStatusResponse",
    "ScheduleUpdate",
    "SuccessResponse",
    "TaskListResponse",
    "TaskResponse",
    # Worker events
    "Completed",
    "CompletedWithData",
    "DataMetadata",
    "ErrorType",
    "Failed",
    "LogLine",
    "ParseError",
    "Started",
    "StatusEvent",
    "StatusKind",
    "WorkerEvent",
    "WorkerExited",
    # Domain records
    "FailureRecord",
    "InfoGatheringResult",
    "NextRun",
    "RunHandle",
    "ScheduleEntry",
    "TriggerKind",
]

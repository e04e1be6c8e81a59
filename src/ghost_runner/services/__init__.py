from .failure_store import FailureStore, context_fingerprint
from .info_cache import InfoGatheringCache
from .notifications import NotificationEvent, NotificationHub, log_notification
from .orchestrator import ExecutionOrchestrator
from .scheduler import SchedulerService, compute_next_run, has_pending_work, parse_execute_at
from .scheduler_process import SchedulerProcess
from .sleep_guard import SleepGuard
from .supervisor import WorkerRun, WorkerSupervisor

__all__ = [
    "FailureStore",
    "context_fingerprint",
    "InfoGatheringCache",
    "NotificationEvent",
    "NotificationHub",
    "log_notification",
    "ExecutionOrchestrator",
    "SchedulerService",
    "compute_next_run",
    "has_pending_work",
    "parse_execute_at",
    "SchedulerProcess",
    "SleepGuard",
    "WorkerRun",
    "WorkerSupervisor",
]

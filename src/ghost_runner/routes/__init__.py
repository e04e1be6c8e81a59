from .failures import router as failures_router
from .info_gathering import router as info_gathering_router
from .scheduler import router as scheduler_router
from .tasks import router as tasks_router
from .websocket import router as websocket_router

__all__ = [
    "failures_router",
    "info_gathering_router",
    "scheduler_router",
    "tasks_router",
    "websocket_router",
]

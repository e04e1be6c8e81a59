"""FastAPI dependency injection providers for services."""

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request, WebSocket

if TYPE_CHECKING:
    from ghost_runner.config import Settings
    from ghost_runner.schedule_store import JsonScheduleRepository
    from ghost_runner.services import (
        ExecutionOrchestrator,
        FailureStore,
        InfoGatheringCache,
        NotificationHub,
        SchedulerProcess,
    )
    from ghost_runner.task_repository import TaskRepository


def get_settings(request: Request) -> "Settings":
    return request.app.state.settings


def get_task_repository(request: Request) -> "TaskRepository":
    return request.app.state.task_repository


def get_orchestrator(request: Request) -> "ExecutionOrchestrator":
    return request.app.state.orchestrator


def get_failure_store(request: Request) -> "FailureStore":
    return request.app.state.failure_store


def get_info_cache(request: Request) -> "InfoGatheringCache":
    return request.app.state.info_cache


def get_schedule_repository(request: Request) -> "JsonScheduleRepository":
    return request.app.state.schedule_repository


def get_scheduler_process(request: Request) -> "SchedulerProcess":
    return request.app.state.scheduler_process


def get_notifier(request: Request) -> "NotificationHub":
    return request.app.state.notifier


# WebSocket-specific dependencies (WebSocket routes don't have Request)
def get_notifier_ws(websocket: WebSocket) -> "NotificationHub":
    """Get the notification hub from app state (for WebSocket routes)."""
    return websocket.app.state.notifier


SettingsDep = Annotated["Settings", Depends(get_settings)]
TaskRepositoryDep = Annotated["TaskRepository", Depends(get_task_repository)]
OrchestratorDep = Annotated["ExecutionOrchestrator", Depends(get_orchestrator)]
FailureStoreDep = Annotated["FailureStore", Depends(get_failure_store)]
InfoCacheDep = Annotated["InfoGatheringCache", Depends(get_info_cache)]
ScheduleRepositoryDep = Annotated["JsonScheduleRepository", Depends(get_schedule_repository)]
SchedulerProcessDep = Annotated["SchedulerProcess", Depends(get_scheduler_process)]
NotifierDep = Annotated["NotificationHub", Depends(get_notifier)]
NotifierWsDep = Annotated["NotificationHub", Depends(get_notifier_ws)]

"""Scheduler process control and schedule editing endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from ghost_runner.dependencies import NotifierDep, ScheduleRepositoryDep, SchedulerProcessDep
from ghost_runner.errors import ScheduleFormatError
from ghost_runner.models.api import (
    MessageResponse,
    NextRunResponse,
    ScheduleResponse,
    SchedulerStatusResponse,
    ScheduleUpdate,
)
from ghost_runner.services.notifications import NotificationEvent
from ghost_runner.services.scheduler import compute_next_run

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scheduler"])


@router.get("/scheduler/status", response_model=SchedulerStatusResponse)
async def get_status(scheduler_process: SchedulerProcessDep) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(running=scheduler_process.is_running())


@router.post("/scheduler/start", response_model=MessageResponse)
async def start_scheduler(scheduler_process: SchedulerProcessDep) -> MessageResponse:
    if scheduler_process.is_running():
        return MessageResponse(message="Scheduler is already running.")
    if not await scheduler_process.start():
        raise HTTPException(status_code=500, detail="Failed to start scheduler.")
    return MessageResponse(message="Scheduler started.")


@router.post("/scheduler/stop", response_model=MessageResponse)
async def stop_scheduler(scheduler_process: SchedulerProcessDep) -> MessageResponse:
    if await scheduler_process.stop():
        return MessageResponse(message="Scheduler stopped.")
    return MessageResponse(message="Scheduler is not running.")


@router.get("/schedule", response_model=ScheduleResponse)
async def get_schedule(schedule: ScheduleRepositoryDep) -> ScheduleResponse:
    try:
        items = await schedule.list_raw()
    except ScheduleFormatError as e:
        logger.error(f"Failed to read schedule: {e}")
        raise HTTPException(status_code=500, detail="Failed to read schedule file.")
    return ScheduleResponse(schedule=items)


@router.put("/schedule", response_model=MessageResponse)
async def save_schedule(
    body: ScheduleUpdate,
    schedule: ScheduleRepositoryDep,
    scheduler_process: SchedulerProcessDep,
    notifier: NotifierDep,
) -> MessageResponse:
    """Replace the schedule and restart the scheduler so it takes effect."""
    items = [item.to_entry_dict() for item in body.schedule]
    try:
        await schedule.save_raw(items)
    except OSError as e:
        logger.error(f"Failed to save schedule: {e}")
        raise HTTPException(status_code=500, detail="Failed to save schedule.")
    await notifier.publish(NotificationEvent.SCHEDULE_UPDATED, {"schedule": items})
    await scheduler_process.restart()
    return MessageResponse(message="Schedule updated successfully.")


@router.get("/schedule/next", response_model=NextRunResponse)
async def get_next_task(schedule: ScheduleRepositoryDep) -> NextRunResponse:
    try:
        entries = await schedule.list_entries()
    except ScheduleFormatError as e:
        logger.error(f"Failed to read schedule: {e}")
        raise HTTPException(status_code=500, detail="Invalid JSON in schedule file.")
    next_run = compute_next_run(entries)
    return NextRunResponse(next_task=next_run.to_dict() if next_run else None)

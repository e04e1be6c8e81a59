"""Task discovery and manual run endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from ghost_runner.dependencies import OrchestratorDep, TaskRepositoryDep
from ghost_runner.errors import TaskNotFoundError
from ghost_runner.models.api import RunTaskResponse, TaskListResponse, TaskResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=TaskListResponse)
async def list_tasks(tasks: TaskRepositoryDep) -> TaskListResponse:
    """List every runnable task, after directory precedence is applied."""
    definitions = await tasks.find_all()
    return TaskListResponse(
        tasks=[TaskResponse(name=d.name, type=d.type.value) for d in definitions]
    )


@router.post("/{task_name}/run", response_model=RunTaskResponse)
async def run_task(task_name: str, orchestrator: OrchestratorDep) -> RunTaskResponse:
    try:
        handle = await orchestrator.run_now(task_name)
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if handle is None:
        raise HTTPException(status_code=500, detail=f"Failed to start task '{task_name}'")
    return RunTaskResponse(
        message=f"Task '{task_name}' started.",
        task_name=task_name,
        process_id=handle.process_id,
    )

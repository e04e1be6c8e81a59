"""Failure record endpoints for the warnings panel."""

from typing import Any

from fastapi import APIRouter, HTTPException

from ghost_runner.dependencies import FailureStoreDep, NotifierDep
from ghost_runner.models.api import ClearedResponse, SuccessResponse
from ghost_runner.services.notifications import NotificationEvent

router = APIRouter(prefix="/api/failures", tags=["failures"])


@router.get("")
async def list_failures(failures: FailureStoreDep) -> dict[str, Any]:
    """Active failures; every failure when all of them are dismissed."""
    records = await failures.list_active()
    return {"failures": [r.to_dict() for r in records]}


@router.delete("/{failure_id}", response_model=SuccessResponse)
async def dismiss_failure(failure_id: str, failures: FailureStoreDep) -> SuccessResponse:
    if not await failures.dismiss(failure_id):
        raise HTTPException(status_code=404, detail=f"Failure {failure_id} not found")
    return SuccessResponse()


@router.delete("", response_model=ClearedResponse)
async def clear_failures(failures: FailureStoreDep, notifier: NotifierDep) -> ClearedResponse:
    cleared = await failures.clear_all()
    await notifier.publish(NotificationEvent.FAILURES_CLEARED, {"cleared": cleared})
    return ClearedResponse(cleared=cleared)

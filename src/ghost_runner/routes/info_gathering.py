"""Info-gathering result endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException

from ghost_runner.dependencies import InfoCacheDep, NotifierDep
from ghost_runner.errors import InvalidTaskNameError
from ghost_runner.models.api import ClearedResponse, SuccessResponse
from ghost_runner.services.notifications import NotificationEvent

router = APIRouter(prefix="/api/info-gathering", tags=["info-gathering"])


@router.get("")
async def list_results(info_cache: InfoCacheDep) -> dict[str, Any]:
    """Every stored result, each flagged ``stale`` once past its expiry."""
    now = datetime.now(timezone.utc)
    results = await info_cache.list_results()
    return {"results": [r.to_dict(now=now) for r in results]}


@router.delete("/{task_name}", response_model=SuccessResponse)
async def delete_result(
    task_name: str, info_cache: InfoCacheDep, notifier: NotifierDep
) -> SuccessResponse:
    try:
        deleted = await info_cache.delete(task_name)
    except InvalidTaskNameError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No result stored for task '{task_name}'")
    await notifier.publish(NotificationEvent.INFO_DATA_CLEARED, {"taskName": task_name})
    return SuccessResponse()


@router.delete("", response_model=ClearedResponse)
async def clear_results(info_cache: InfoCacheDep, notifier: NotifierDep) -> ClearedResponse:
    cleared = await info_cache.clear_all()
    await notifier.publish(NotificationEvent.INFO_DATA_CLEARED, {"taskName": None})
    return ClearedResponse(cleared=cleared)

"""API request/response schemas for FastAPI endpoints."""

from datetime import datetime
from typing import Any

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Task schemas
class TaskResponse(BaseModel):
    name: str
    type: str


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]


class RunTaskResponse(BaseModel):
    message: str
    task_name: str
    process_id: int | None = None


# Schedule schemas
class ScheduleItem(BaseModel):
    """One schedule entry as submitted by the dashboard.

    Keys beyond the known ones are kept so they survive a save.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    task: str = Field(min_length=1, max_length=99, pattern=r"^[A-Za-z0-9_-]+$")
    cron: str | None = None
    execute_at: str | None = Field(default=None, alias="executeAt")
    enabled: bool = True

    @field_validator("cron")
    @classmethod
    def validate_cron(cls, value: str | None) -> str | None:
        if value is not None and not croniter.is_valid(value):
            raise ValueError(f"invalid cron expression: {value}")
        return value

    @field_validator("execute_at")
    @classmethod
    def validate_execute_at(cls, value: str | None) -> str | None:
        if value is not None:
            datetime.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def require_timing(self) -> "ScheduleItem":
        if self.cron is None and self.execute_at is None:
            raise ValueError("schedule item must have either cron or executeAt")
        return self

    def to_entry_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ScheduleUpdate(BaseModel):
    schedule: list[ScheduleItem]


class ScheduleResponse(BaseModel):
    schedule: list[dict[str, Any]]


class NextRunResponse(BaseModel):
    next_task: dict[str, Any] | None = None


class SchedulerStatusResponse(BaseModel):
    running: bool


# Generic responses
class MessageResponse(BaseModel):
    message: str


class SuccessResponse(BaseModel):
    success: bool = True


class ClearedResponse(BaseModel):
    cleared: int

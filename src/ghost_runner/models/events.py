"""Events produced by worker processes and their supervisor.

Status events are the four payload shapes a worker reports through the
``[TASK_STATUS:<STATUS>]<json>`` line protocol. Field names are camelCase on
the wire and snake_case in Python.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class StatusKind(str, Enum):
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_DATA = "COMPLETED_WITH_DATA"
    FAILED = "FAILED"


class ErrorType(str, Enum):
    ELEMENT_NOT_FOUND = "element_not_found"
    NAVIGATION_FAILURE = "navigation_failure"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


DataType = Literal["key-value", "table", "custom"]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Started(_WireModel):
    status: ClassVar[StatusKind] = StatusKind.STARTED

    task_name: str | None = None
    timestamp: str | None = None


class Completed(_WireModel):
    status: ClassVar[StatusKind] = StatusKind.COMPLETED

    task_name: str | None = None
    duration_ms: int | None = None
    timestamp: str | None = None


class DataMetadata(_WireModel):
    """Display metadata attached to a task's returned data."""

    category: str | None = None
    data_type: DataType = "key-value"
    ttl_seconds: float | None = Field(default=None, ge=0)
    display_name: str | None = None
    rendered_by: str | None = None


class CompletedWithData(_WireModel):
    status: ClassVar[StatusKind] = StatusKind.COMPLETED_WITH_DATA

    task_name: str | None = None
    data: Any
    metadata: DataMetadata = Field(default_factory=DataMetadata)
    timestamp: str | None = None


class Failed(_WireModel):
    status: ClassVar[StatusKind] = StatusKind.FAILED

    task_name: str | None = None
    error_type: ErrorType = ErrorType.UNKNOWN
    context: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("context", "errorContext"),
    )
    timestamp: str | None = None

    @field_validator("error_type", mode="before")
    @classmethod
    def normalize_error_type(cls, value: Any) -> Any:
        if isinstance(value, ErrorType):
            return value
        try:
            return ErrorType(value)
        except ValueError:
            return ErrorType.UNKNOWN

    @model_validator(mode="before")
    @classmethod
    def fold_error_message(cls, data: Any) -> Any:
        # Older workers send the message beside the context instead of in it.
        if not isinstance(data, dict) or "errorMessage" not in data:
            return data
        data = dict(data)
        message = data.pop("errorMessage")
        context_key = "errorContext" if "errorContext" in data else "context"
        context = dict(data.get(context_key) or {})
        context.setdefault("errorMessage", message)
        data[context_key] = context
        return data

    @property
    def error_message(self) -> str | None:
        message = self.context.get("errorMessage") or self.context.get("message")
        return str(message) if message is not None else None


StatusEvent = Started | Completed | CompletedWithData | Failed

STATUS_EVENT_TYPES: dict[StatusKind, type[_WireModel]] = {
    StatusKind.STARTED: Started,
    StatusKind.COMPLETED: Completed,
    StatusKind.COMPLETED_WITH_DATA: CompletedWithData,
    StatusKind.FAILED: Failed,
}


@dataclass(frozen=True)
class ParseError:
    """A line carried the status marker but its payload could not be decoded."""

    line: str
    reason: str


@dataclass(frozen=True)
class LogLine:
    """An opaque output line, forwarded to observers verbatim."""

    text: str
    stream: Literal["stdout", "stderr"] = "stdout"


@dataclass(frozen=True)
class WorkerExited:
    return_code: int


WorkerEvent = StatusEvent | ParseError | LogLine | WorkerExited

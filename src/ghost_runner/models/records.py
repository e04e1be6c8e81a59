"""Derived records kept by the failure store and info-gathering cache."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from ghost_runner.models.events import CompletedWithData, DataType, ErrorType

if TYPE_CHECKING:
    from ghost_runner.db.models import FailureModel, InfoGatheringModel

DEFAULT_CATEGORY = "Uncategorized"


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime (SQLite hands back naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None


class TriggerKind(str, Enum):
    MANUAL = "manual"
    CRON = "cron"
    ONESHOT = "oneshot"


@dataclass(frozen=True)
class RunHandle:
    """One worker process run, owned by the orchestrator while it is alive."""

    task_name: str
    process_id: int
    started_at: datetime
    trigger: TriggerKind = TriggerKind.MANUAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskName": self.task_name,
            "processId": self.process_id,
            "startedAt": _iso(self.started_at),
            "trigger": self.trigger.value,
        }


@dataclass
class FailureRecord:
    id: str
    task_name: str
    error_type: ErrorType
    context: dict[str, Any]
    timestamp: datetime
    last_seen: datetime
    count: int = 1
    dismissed: bool = False
    fingerprint: str = ""

    @property
    def is_new(self) -> bool:
        """True until a matching failure has been folded into this record."""
        return self.count == 1

    @classmethod
    def from_model(cls, model: "FailureModel") -> "FailureRecord":
        return cls(
            id=model.id,
            task_name=model.task_name,
            error_type=ErrorType(model.error_type),
            context=dict(model.context or {}),
            timestamp=as_utc(model.first_seen_at),
            last_seen=as_utc(model.last_seen_at),
            count=model.count,
            dismissed=model.dismissed,
            fingerprint=model.fingerprint,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskName": self.task_name,
            "errorType": self.error_type.value,
            "context": self.context,
            "timestamp": _iso(self.timestamp),
            "lastSeen": _iso(self.last_seen),
            "count": self.count,
            "dismissed": self.dismissed,
        }


@dataclass
class InfoGatheringResult:
    task_name: str
    category: str
    display_name: str
    data: Any
    last_updated: datetime
    expires_at: datetime | None = None
    data_type: DataType = "key-value"
    rendered_by: str | None = None

    @classmethod
    def from_event(
        cls, event: CompletedWithData, task_name: str, now: datetime
    ) -> "InfoGatheringResult":
        """Build the cached result for a COMPLETED_WITH_DATA event.

        A TTL on the event sets expires_at; without one the result never
        expires on its own.
        """
        metadata = event.metadata
        expires_at = None
        if metadata.ttl_seconds is not None:
            expires_at = now + timedelta(seconds=metadata.ttl_seconds)
        return cls(
            task_name=task_name,
            category=metadata.category or DEFAULT_CATEGORY,
            display_name=metadata.display_name or task_name,
            data=event.data,
            last_updated=now,
            expires_at=expires_at,
            data_type=metadata.data_type,
            rendered_by=metadata.rendered_by,
        )

    @classmethod
    def from_model(cls, model: "InfoGatheringModel") -> "InfoGatheringResult":
        return cls(
            task_name=model.task_name,
            category=model.category,
            display_name=model.display_name,
            data=model.data,
            last_updated=as_utc(model.last_updated),
            expires_at=as_utc(model.expires_at) if model.expires_at else None,
            data_type=model.data_type,  # type: ignore[arg-type]
            rendered_by=model.rendered_by,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "taskName": self.task_name,
            "category": self.category,
            "displayName": self.display_name,
            "data": self.data,
            "lastUpdated": _iso(self.last_updated),
            "expiresAt": _iso(self.expires_at),
            "metadata": {"dataType": self.data_type, "renderedBy": self.rendered_by},
        }
        if now is not None:
            payload["stale"] = self.is_expired(now)
        return payload


@dataclass
class ScheduleEntry:
    """A persisted declaration of when a task should run.

    ``cron`` wins when both fields are present. Keys this model does not know
    about are carried in ``extra`` so rewriting the schedule preserves them.
    """

    task: str = ""
    cron: str | None = None
    execute_at: str | None = None
    enabled: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_cron(self) -> bool:
        return bool(self.cron)

    @property
    def is_one_shot(self) -> bool:
        return not self.cron and bool(self.execute_at)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "ScheduleEntry":
        known = {"task", "cron", "executeAt", "enabled"}
        return cls(
            task=item.get("task") or "",
            cron=item.get("cron") or None,
            execute_at=item.get("executeAt") or None,
            enabled=item.get("enabled", True) is not False,
            extra={k: v for k, v in item.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"task": self.task}
        if self.cron:
            data["cron"] = self.cron
        if self.execute_at:
            data["executeAt"] = self.execute_at
        if not self.enabled:
            data["enabled"] = False
        data.update(self.extra)
        return data


@dataclass(frozen=True)
class NextRun:
    task: str
    next_run: datetime
    delay_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task,
            "nextRun": _iso(self.next_run),
            "delayMs": self.delay_ms,
        }

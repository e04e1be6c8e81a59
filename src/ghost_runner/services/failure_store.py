"""Deduplicating store for structured task failures."""

import asyncio
import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghost_runner.db.engine import get_session
from ghost_runner.db.repositories.failures import FailureRepository
from ghost_runner.models.events import ErrorType
from ghost_runner.models.records import FailureRecord

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_WINDOW = timedelta(hours=24)

# Context fields that identify *where* a failure happened. Each entry lists
# the keys accepted for that field, in order of preference.
FINGERPRINT_FIELDS: dict[str, tuple[str, ...]] = {
    "selector": ("selector",),
    "url": ("url", "pageUrl"),
}


def context_fingerprint(context: dict[str, Any]) -> str:
    """Stable hash of the comparable fields of a failure context.

    Only ``selector`` and ``url`` (``pageUrl`` when ``url`` is absent) are
    compared; messages, stack traces and timestamps vary between otherwise
    identical failures and are ignored. A context with none of these fields
    hashes the same as any other such context.
    """
    comparable: dict[str, Any] = {}
    for name, keys in FINGERPRINT_FIELDS.items():
        for key in keys:
            value = context.get(key)
            if value is not None:
                comparable[name] = value
                break
    encoded = json.dumps(comparable, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode()).hexdigest()


class FailureStore:
    """Records task failures, folding repeats into one record.

    A failure matching the ``(task_name, error_type, fingerprint)`` of a
    non-dismissed record last seen within the dedup window increments that
    record's count instead of creating a new record. Deletion (dismiss and
    clear) is operator-driven and unconditional.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dedup_window: timedelta = DEFAULT_DEDUP_WINDOW,
    ) -> None:
        self._session_factory = session_factory
        self._dedup_window = dedup_window
        # Serializes the find-then-write of record() within this process
        self._lock = asyncio.Lock()

    async def record(
        self,
        task_name: str,
        error_type: ErrorType,
        context: dict[str, Any],
        now: datetime | None = None,
    ) -> FailureRecord:
        """Record a failure, deduplicating against recent records.

        Returns:
            The new record (count 1) or the updated existing record
        """
        now = now or datetime.now(timezone.utc)
        fingerprint = context_fingerprint(context)

        async with self._lock:
            async with get_session(self._session_factory) as session:
                repo = FailureRepository(session)
                existing = await repo.find_recent(
                    task_name,
                    error_type,
                    fingerprint,
                    since=now - self._dedup_window,
                )
                if existing is not None:
                    model = await repo.touch(existing, now)
                else:
                    model = await repo.create(
                        task_name=task_name,
                        error_type=error_type,
                        fingerprint=fingerprint,
                        context=context,
                        seen_at=now,
                    )
                record = FailureRecord.from_model(model)

        if record.is_new:
            logger.info(f"Recorded new {error_type.value} failure for task '{task_name}'")
        else:
            logger.info(
                f"Repeated {error_type.value} failure for task '{task_name}' "
                f"(seen {record.count} times)"
            )
        return record

    async def get(self, failure_id: str) -> FailureRecord | None:
        async with get_session(self._session_factory) as session:
            model = await FailureRepository(session).get(failure_id)
            return FailureRecord.from_model(model) if model else None

    async def list_all(self) -> list[FailureRecord]:
        async with get_session(self._session_factory) as session:
            models = await FailureRepository(session).list_all()
            return [FailureRecord.from_model(m) for m in models]

    async def list_active(self) -> list[FailureRecord]:
        """Non-dismissed records, or every record when all are dismissed.

        Showing dismissed history beats an empty warnings panel.
        """
        async with get_session(self._session_factory) as session:
            repo = FailureRepository(session)
            models = await repo.list_active() or await repo.list_all()
            return [FailureRecord.from_model(m) for m in models]

    async def dismiss(self, failure_id: str) -> bool:
        async with get_session(self._session_factory) as session:
            dismissed = await FailureRepository(session).dismiss(failure_id)
        if dismissed:
            logger.info(f"Dismissed failure {failure_id}")
        return dismissed

    async def clear_all(self) -> int:
        async with get_session(self._session_factory) as session:
            deleted = await FailureRepository(session).delete_all()
        logger.info(f"Cleared {deleted} failure records")
        return deleted

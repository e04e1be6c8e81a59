"""Latest data payload per info-gathering task."""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ghost_runner.db.engine import get_session
from ghost_runner.db.repositories.info_gathering import InfoGatheringRepository
from ghost_runner.models.records import InfoGatheringResult
from ghost_runner.task_repository import validate_task_name

logger = logging.getLogger(__name__)


class InfoGatheringCache:
    """One result per task; a new completion replaces the old one outright.

    Expiry is evaluated lazily: expired results stay stored and readable and
    are only flagged stale to callers. Nothing sweeps them, so the store
    grows until an explicit delete or clear.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def is_expired(result: InfoGatheringResult, now: datetime | None = None) -> bool:
        return result.is_expired(now or datetime.now(timezone.utc))

    async def upsert(self, result: InfoGatheringResult) -> InfoGatheringResult:
        validate_task_name(result.task_name)
        async with get_session(self._session_factory) as session:
            model = await InfoGatheringRepository(session).upsert(
                task_name=result.task_name,
                category=result.category,
                display_name=result.display_name,
                data=result.data,
                data_type=result.data_type,
                last_updated=result.last_updated,
                expires_at=result.expires_at,
                rendered_by=result.rendered_by,
            )
            stored = InfoGatheringResult.from_model(model)
        logger.info(f"Stored info-gathering result for task '{result.task_name}'")
        return stored

    async def get(self, task_name: str) -> InfoGatheringResult | None:
        async with get_session(self._session_factory) as session:
            model = await InfoGatheringRepository(session).get(task_name)
            return InfoGatheringResult.from_model(model) if model else None

    async def list_results(self) -> list[InfoGatheringResult]:
        """Every stored result, expired ones included."""
        async with get_session(self._session_factory) as session:
            models = await InfoGatheringRepository(session).list_all()
            return [InfoGatheringResult.from_model(m) for m in models]

    async def delete(self, task_name: str) -> bool:
        validate_task_name(task_name)
        async with get_session(self._session_factory) as session:
            deleted = await InfoGatheringRepository(session).delete(task_name)
        if deleted:
            logger.info(f"Cleared info-gathering result for task '{task_name}'")
        return deleted

    async def clear_all(self) -> int:
        async with get_session(self._session_factory) as session:
            deleted = await InfoGatheringRepository(session).delete_all()
        logger.info(f"Cleared {deleted} info-gathering results")
        return deleted

"""Failure repository for database operations."""

from datetime import datetime
from typing import Any, cast

from sqlalchemy import CursorResult, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ghost_runner.db.models import FailureModel
from ghost_runner.models.events import ErrorType


class FailureRepository:
    """Repository for failure record database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        task_name: str,
        error_type: ErrorType,
        fingerprint: str,
        context: dict[str, Any],
        seen_at: datetime,
    ) -> FailureModel:
        """Create a new failure record with a count of one.

        Args:
            task_name: Name of the task that failed
            error_type: Classification of the error
            fingerprint: Hash of the comparable context fields
            context: Structured error context
            seen_at: Time of the failure (first and last seen)

        Returns:
            The created FailureModel
        """
        model = FailureModel(
            task_name=task_name,
            error_type=error_type,
            fingerprint=fingerprint,
            context=context,
            first_seen_at=seen_at,
            last_seen_at=seen_at,
            count=1,
            dismissed=False,
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def get(self, failure_id: str) -> FailureModel | None:
        """Get a failure record by ID."""
        return await self.session.get(FailureModel, failure_id)

    async def find_recent(
        self,
        task_name: str,
        error_type: ErrorType,
        fingerprint: str,
        since: datetime,
    ) -> FailureModel | None:
        """Find the newest non-dismissed record for a dedup key.

        Args:
            task_name: Name of the task that failed
            error_type: Classification of the error
            fingerprint: Hash of the comparable context fields
            since: Only records last seen at or after this time match

        Returns:
            The matching FailureModel, or None if there is none in the window
        """
        result = await self.session.execute(
            select(FailureModel)
            .where(FailureModel.task_name == task_name)
            .where(FailureModel.error_type == error_type)
            .where(FailureModel.fingerprint == fingerprint)
            .where(FailureModel.dismissed.is_(False))
            .where(FailureModel.last_seen_at >= since)
            .order_by(FailureModel.last_seen_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def touch(self, model: FailureModel, seen_at: datetime) -> FailureModel:
        """Fold another occurrence into an existing record."""
        model.count += 1
        model.last_seen_at = seen_at
        await self.session.flush()
        return model

    async def list_all(self) -> list[FailureModel]:
        """Get all failure records, most recently seen first."""
        result = await self.session.execute(
            select(FailureModel).order_by(FailureModel.last_seen_at.desc())
        )
        return list(result.scalars().all())

    async def list_active(self) -> list[FailureModel]:
        """Get non-dismissed failure records, most recently seen first."""
        result = await self.session.execute(
            select(FailureModel)
            .where(FailureModel.dismissed.is_(False))
            .order_by(FailureModel.last_seen_at.desc())
        )
        return list(result.scalars().all())

    async def dismiss(self, failure_id: str) -> bool:
        """Mark a failure record as dismissed.

        Returns:
            True if the record exists, False otherwise
        """
        result = cast(
            CursorResult[Any],
            await self.session.execute(
                update(FailureModel)
                .where(FailureModel.id == failure_id)
                .values(dismissed=True)
            ),
        )
        return result.rowcount > 0

    async def delete_all(self) -> int:
        """Delete every failure record.

        Returns:
            Number of records deleted
        """
        result = cast(CursorResult[Any], await self.session.execute(delete(FailureModel)))
        return result.rowcount

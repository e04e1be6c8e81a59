"""Info-gathering result repository for database operations."""

from datetime import datetime
from typing import Any, cast

from sqlalchemy import CursorResult, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghost_runner.db.models import InfoGatheringModel


class InfoGatheringRepository:
    """Repository for info-gathering result database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, task_name: str) -> InfoGatheringModel | None:
        """Get the stored result for a task."""
        return await self.session.get(InfoGatheringModel, task_name)

    async def upsert(
        self,
        task_name: str,
        category: str,
        display_name: str,
        data: Any,
        data_type: str,
        last_updated: datetime,
        expires_at: datetime | None = None,
        rendered_by: str | None = None,
    ) -> InfoGatheringModel:
        """Create or wholly replace the result for a task.

        Args:
            task_name: Name of the task that produced the data
            category: Grouping category
            display_name: Human-readable name
            data: The returned data (replaces any previous data, no merge)
            data_type: Rendering hint (key-value, table or custom)
            last_updated: Time the data was produced
            expires_at: Time after which the data is stale, or None
            rendered_by: Optional renderer name

        Returns:
            The stored InfoGatheringModel
        """
        model = await self.get(task_name)
        if model is None:
            model = InfoGatheringModel(task_name=task_name)
            self.session.add(model)

        model.category = category
        model.display_name = display_name
        model.data = data
        model.data_type = data_type
        model.rendered_by = rendered_by
        model.last_updated = last_updated
        model.expires_at = expires_at

        await self.session.flush()
        return model

    async def list_all(self) -> list[InfoGatheringModel]:
        """Get every stored result, ordered by category then task name."""
        result = await self.session.execute(
            select(InfoGatheringModel).order_by(
                InfoGatheringModel.category, InfoGatheringModel.task_name
            )
        )
        return list(result.scalars().all())

    async def delete(self, task_name: str) -> bool:
        """Delete the result for a task.

        Returns:
            True if a result was deleted, False if none existed
        """
        result = cast(
            CursorResult[Any],
            await self.session.execute(
                delete(InfoGatheringModel).where(InfoGatheringModel.task_name == task_name)
            ),
        )
        return result.rowcount > 0

    async def delete_all(self) -> int:
        """Delete every stored result."""
        result = cast(CursorResult[Any], await self.session.execute(delete(InfoGatheringModel)))
        return result.rowcount

"""SQLAlchemy ORM models for failure records and info-gathering results."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ghost_runner.models.events import ErrorType


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class FailureModel(Base):
    """A deduplicated task failure."""

    __tablename__ = "failures"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    task_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    error_type: Mapped[ErrorType] = mapped_column(
        Enum(
            ErrorType,
            name="failure_error_type",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    # Hash of the comparable context fields, part of the dedup key
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    dismissed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class InfoGatheringModel(Base):
    """Latest data returned by an info-gathering task (one row per task)."""

    __tablename__ = "info_gathering_results"

    task_name: Mapped[str] = mapped_column(String(100), primary_key=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="key-value")
    rendered_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

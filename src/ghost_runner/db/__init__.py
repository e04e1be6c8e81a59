"""Database module for ghost-runner stores."""

from ghost_runner.db.engine import (
    create_engine,
    create_session_factory,
    create_tables,
    get_session,
)
from ghost_runner.db.models import Base, FailureModel, InfoGatheringModel

__all__ = [
    "create_engine",
    "create_session_factory",
    "create_tables",
    "get_session",
    "Base",
    "FailureModel",
    "InfoGatheringModel",
]

"""Repository classes for database operations."""

from ghost_runner.db.repositories.failures import FailureRepository
from ghost_runner.db.repositories.info_gathering import InfoGatheringRepository

__all__ = [
    "FailureRepository",
    "InfoGatheringRepository",
]

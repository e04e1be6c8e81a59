"""Persistence for the operator-edited schedule."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from ghost_runner.errors import ScheduleFormatError
from ghost_runner.models.records import ScheduleEntry

logger = logging.getLogger(__name__)


class ScheduleRepository(Protocol):
    """Ordered collection of schedule entries."""

    async def list_entries(self) -> list[ScheduleEntry]: ...

    async def save_entries(self, entries: Sequence[ScheduleEntry]) -> None: ...

    async def remove_entry(self, task: str, execute_at: str) -> bool: ...


class JsonScheduleRepository:
    """Schedule stored as a JSON array in a file (``schedule.json``).

    A missing file is an empty schedule. There is no locking: each operation
    re-reads the file, so edits made between operations are picked up and the
    last writer wins.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def _read_raw(self) -> list[Any]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError as e:
            raise ScheduleFormatError(f"Error parsing {self._path.name}: {e}") from e
        if not isinstance(data, list):
            raise ScheduleFormatError(
                f"Invalid schedule format in {self._path.name}: expected an array"
            )
        return data

    def _write_raw(self, items: list[Any]) -> None:
        self._path.write_text(json.dumps(items, indent=2), encoding="utf-8")

    async def list_raw(self) -> list[Any]:
        """Return the persisted entries exactly as stored."""
        return self._read_raw()

    async def list_entries(self) -> list[ScheduleEntry]:
        entries = []
        for item in self._read_raw():
            if not isinstance(item, dict):
                logger.warning(f"Skipping invalid config entry (not an object): {item!r}")
                continue
            entries.append(ScheduleEntry.from_dict(item))
        return entries

    async def save_entries(self, entries: Sequence[ScheduleEntry]) -> None:
        self._write_raw([entry.to_dict() for entry in entries])

    async def save_raw(self, items: list[dict[str, Any]]) -> None:
        self._write_raw(items)

    async def remove_entry(self, task: str, execute_at: str) -> bool:
        """Remove every entry matching the exact (task, executeAt) pair.

        The file is re-read first, so entries added or reordered since the
        schedule was loaded are preserved; matching is by identity, never by
        position.

        Returns:
            True if anything was removed
        """
        items = self._read_raw()
        kept = [
            item
            for item in items
            if not (
                isinstance(item, dict)
                and item.get("task") == task
                and item.get("executeAt") == execute_at
            )
        ]
        if len(kept) == len(items):
            return False
        self._write_raw(kept)
        return True

"""Entity repository interface and in-memory implementation."""

import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from ..errors import PersistenceError
from ..models.entities import EntityKind

logger = structlog.get_logger(__name__)

Record = dict[str, Any]


class BaseRepository(ABC):
    """
    Key-value store of entity records per kind.

    Records are plain dicts carrying at least `id`, `owner` and `active`.
    Every read returns a fresh copy, so callers may mutate what they load
    without affecting the stored record until they save it back.
    """

    @abstractmethod
    def save(self, kind: EntityKind, record: Record) -> None:
        """Insert or replace a record by id."""

    @abstractmethod
    def get(self, kind: EntityKind, entity_id: str) -> Optional[Record]:
        """Load one record, or None if absent."""

    @abstractmethod
    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""

    @abstractmethod
    def load_all(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        """Load every record of a kind, optionally for one owner."""

    @abstractmethod
    def load_active(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        """Load active records of a kind, optionally for one owner."""

    def close(self) -> None:
        """Release resources held by the repository."""


def _validate_record(kind: EntityKind, record: Record) -> None:
    for key in ("id", "owner"):
        if not record.get(key):
            raise PersistenceError(
                f"Cannot save {kind.value} without '{key}'",
                operation="save",
                target=kind.value,
            )


class InMemoryRepository(BaseRepository):
    """Thread-safe dict-backed repository; contents are lost on restart."""

    def __init__(self):
        self._collections: dict[EntityKind, dict[str, Record]] = {kind: {} for kind in EntityKind}
        self._lock = threading.RLock()
        self.logger = logger

    def save(self, kind: EntityKind, record: Record) -> None:
        _validate_record(kind, record)
        with self._lock:
            self._collections[kind][record["id"]] = copy.deepcopy(record)

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Record]:
        with self._lock:
            record = self._collections[kind].get(entity_id)
            return copy.deepcopy(record) if record is not None else None

    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        with self._lock:
            return self._collections[kind].pop(entity_id, None) is not None

    def load_all(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._collections[kind].values()
                if owner is None or record.get("owner") == owner
            ]

    def load_active(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        return [record for record in self.load_all(kind, owner) if record.get("active")]

    def count(self, kind: EntityKind) -> int:
        with self._lock:
            return len(self._collections[kind])

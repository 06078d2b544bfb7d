"""
Shared cycle machinery for the automation engines.

A cycle snapshots the active set under the collection lock, fans items out
to a bounded worker pool, and isolates each item behind its own error
handling. Items are re-read under the lock before any mutation so that an
entity deleted or paused mid-cycle is skipped rather than resurrected.
"""

import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generic, Optional, TypeVar

import structlog

from ..errors import EntityNotFoundError, InvalidRequestError, MalformedEntityError
from ..logging.config import get_cycle_logger, log_cycle_summary
from ..models.entities import Direction, EntityKind
from ..notify.dispatcher import Notifier
from ..persistence.repository import BaseRepository
from ..utils.time import utc_now

logger = structlog.get_logger(__name__)
cycle_logger = get_cycle_logger(__name__)

E = TypeVar("E")


@dataclass
class ItemResult:
    """Outcome of processing one entity in a cycle."""
    triggered: bool = False
    executed: bool = False
    failed: bool = False
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class CycleReport:
    """Summary of one engine cycle."""
    engine: str
    evaluated: int = 0
    triggered: int = 0
    executed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0
    overlapped: bool = False
    errors: list[str] = field(default_factory=list)

    def add(self, result: ItemResult) -> None:
        self.evaluated += 1
        self.triggered += int(result.triggered)
        self.executed += int(result.executed)
        self.failed += int(result.failed)
        self.skipped += int(result.skipped)
        if result.error:
            self.errors.append(result.error)


class CycleEngine(ABC, Generic[E]):
    """Base class for engines that evaluate a collection on a periodic tick."""

    name: str = "engine"
    kind: EntityKind

    def __init__(
        self,
        repository: BaseRepository,
        notifier: Notifier,
        max_workers: int = 4,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.notifier = notifier
        self.max_workers = max(1, max_workers)
        self.clock = clock
        self.logger = logger.bind(engine=self.name)
        self._lock = threading.RLock()
        self._cycle_lock = threading.Lock()

    @abstractmethod
    def decode(self, record: dict[str, Any]) -> E:
        """Build the entity from a stored record."""

    @abstractmethod
    def process(self, item: E) -> ItemResult:
        """Evaluate one entity and apply its trigger policy."""

    def select(self, items: list[E], now: datetime) -> list[E]:
        """Narrow the active snapshot to the items this cycle should evaluate."""
        return items

    def run_cycle(self) -> CycleReport:
        """Run one evaluation cycle. An overlapping call returns an empty report."""
        if not self._cycle_lock.acquire(blocking=False):
            self.logger.warning("Cycle already running; skipping tick")
            return CycleReport(engine=self.name, overlapped=True)

        try:
            start_time = time.time()
            report = CycleReport(engine=self.name)
            items = self.snapshot()

            if items:
                for result in self._dispatch(items):
                    report.add(result)

            report.duration_ms = int((time.time() - start_time) * 1000)
            if items:
                log_cycle_summary(cycle_logger, report)
            return report
        finally:
            self._cycle_lock.release()

    def snapshot(self) -> list[E]:
        """Active entities at cycle start, malformed records logged and skipped."""
        with self._lock:
            records = self.repository.load_active(self.kind)

        items = []
        for record in records:
            try:
                items.append(self.decode(record))
            except MalformedEntityError as e:
                self.logger.error(
                    "Skipping malformed entity",
                    kind=self.kind.value,
                    entity_id=e.entity_id,
                    error=str(e),
                )
        return self.select(items, self.clock())

    def _dispatch(self, items: list[E]) -> list[ItemResult]:
        if self.max_workers == 1 or len(items) == 1:
            return [self._run_item(item) for item in items]

        results = []
        workers = min(self.max_workers, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"{self.name}-cycle") as pool:
            futures = [pool.submit(self._run_item, item) for item in items]
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def _run_item(self, item: E) -> ItemResult:
        try:
            return self.process(item)
        except Exception as e:
            self.logger.exception(
                "Unexpected error processing entity",
                entity_id=getattr(item, "id", None),
                owner=getattr(item, "owner", None),
                error=str(e),
            )
            return ItemResult(failed=True, error=str(e))

    def reload(self, entity_id: str, active_only: bool = True) -> Optional[E]:
        """Re-read an entity; callers hold self._lock when they go on to mutate it."""
        with self._lock:
            record = self.repository.get(self.kind, entity_id)
        if record is None:
            return None
        try:
            entity = self.decode(record)
        except MalformedEntityError as e:
            self.logger.error("Stored entity became malformed", entity_id=entity_id, error=str(e))
            return None
        if active_only and not getattr(entity, "active", False):
            return None
        return entity

    def save(self, entity: Any) -> None:
        with self._lock:
            self.repository.save(self.kind, entity.to_dict())

    def get_owned(self, owner: str, entity_id: str) -> E:
        """Load an entity belonging to owner, or raise EntityNotFoundError."""
        entity = self.reload(entity_id, active_only=False)
        if entity is None or getattr(entity, "owner", None) != owner:
            raise EntityNotFoundError(
                f"No {self.kind.value} {entity_id} for {owner}",
                kind=self.kind.value,
                entity_id=entity_id,
                owner=owner,
            )
        return entity

    def list_for_owner(self, owner: str, active_only: bool = True) -> list[E]:
        with self._lock:
            if active_only:
                records = self.repository.load_active(self.kind, owner)
            else:
                records = self.repository.load_all(self.kind, owner)

        items = []
        for record in records:
            try:
                items.append(self.decode(record))
            except MalformedEntityError as e:
                self.logger.error("Skipping malformed entity", entity_id=e.entity_id, error=str(e))
        return items


def parse_direction(direction: Any) -> Direction:
    try:
        return Direction(getattr(direction, "value", direction))
    except ValueError as e:
        raise InvalidRequestError(
            "Direction must be 'above' or 'below'",
            field="direction",
            value=direction,
        ) from e


def require_positive(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"{field_name} must be a number", field=field_name, value=value) from e
    if number <= 0:
        raise InvalidRequestError(f"{field_name} must be positive", field=field_name, value=value)
    return number


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{field_name} is required", field=field_name, value=value)
    return value.strip()

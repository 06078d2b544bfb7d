"""SQLite-backed entity repository, so automation survives restarts."""

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import structlog

from ..errors import PersistenceError
from ..models.entities import EntityKind
from ..utils.time import format_timestamp, utc_now
from .repository import BaseRepository, Record, _validate_record

logger = structlog.get_logger(__name__)


class SqliteRepository(BaseRepository):
    """Stores each entity as a JSON blob keyed by (kind, id)."""

    def __init__(self, db_path: str = "shiftflow.db"):
        self.db_path = Path(db_path)
        self.logger = logger.bind(db_path=str(self.db_path))
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS entities (
                    kind TEXT NOT NULL,
                    id TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (kind, id)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_entities_owner ON entities(kind, owner)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_entities_active ON entities(kind, active)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, mapping sqlite failures to PersistenceError."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"Database error during {operation}: {e}",
                operation=operation,
                target=str(self.db_path),
            ) from e
        finally:
            if conn:
                conn.close()

    def save(self, kind: EntityKind, record: Record) -> None:
        _validate_record(kind, record)
        try:
            data = json.dumps(record)
        except (TypeError, ValueError) as e:
            raise PersistenceError(
                f"Record is not JSON serializable: {e}",
                operation="save",
                target=kind.value,
            ) from e

        with self._lock:
            with self._get_connection("save") as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO entities (kind, id, owner, active, data, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    kind.value,
                    record["id"],
                    record["owner"],
                    1 if record.get("active") else 0,
                    data,
                    format_timestamp(utc_now()),
                ))
                conn.commit()

        self.logger.debug("Entity stored", kind=kind.value, entity_id=record["id"])

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Record]:
        with self._get_connection("get") as conn:
            row = conn.execute("""
                SELECT data FROM entities WHERE kind = ? AND id = ?
            """, (kind.value, entity_id)).fetchone()

        return self._decode(row) if row else None

    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        with self._lock:
            with self._get_connection("delete") as conn:
                cursor = conn.execute("""
                    DELETE FROM entities WHERE kind = ? AND id = ?
                """, (kind.value, entity_id))
                conn.commit()
                return cursor.rowcount > 0

    def load_all(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        return self._query(kind, owner, active_only=False)

    def load_active(self, kind: EntityKind, owner: Optional[str] = None) -> list[Record]:
        return self._query(kind, owner, active_only=True)

    def _query(self, kind: EntityKind, owner: Optional[str], active_only: bool) -> list[Record]:
        sql = "SELECT data FROM entities WHERE kind = ?"
        params: list[Any] = [kind.value]
        if owner is not None:
            sql += " AND owner = ?"
            params.append(owner)
        if active_only:
            sql += " AND active = 1"
        sql += " ORDER BY rowid"

        with self._get_connection("load") as conn:
            rows = conn.execute(sql, params).fetchall()

        records = []
        for row in rows:
            record = self._decode(row)
            if record is not None:
                records.append(record)
        return records

    def _decode(self, row: sqlite3.Row) -> Optional[Record]:
        try:
            record = json.loads(row["data"])
        except json.JSONDecodeError as e:
            self.logger.error("Skipping undecodable entity row", error=str(e))
            return None
        return record if isinstance(record, dict) else None

    def get_stats(self) -> dict[str, Any]:
        """Entity counts per kind, total and active."""
        with self._get_connection("stats") as conn:
            rows = conn.execute("""
                SELECT kind, COUNT(*) AS total, SUM(active) AS active
                FROM entities GROUP BY kind
            """).fetchall()

        return {row["kind"]: {"total": row["total"], "active": row["active"] or 0} for row in rows}

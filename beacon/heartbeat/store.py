"""
Heartbeat Store

Persistence layer for entity status records.

Two backends share the StatusStore interface:
- MemoryStatusStore: in-memory dict with optional JSON file persistence
- SQLiteStatusStore: one row per entity in a SQLite database
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from abc import ABC, abstractmethod
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from beacon.heartbeat.errors import StoreError
from beacon.heartbeat.models import EntityState, EntityStatus

if TYPE_CHECKING:
    from beacon.config import BeaconSettings

logger = structlog.get_logger(__name__)


class StatusStore(ABC):
    """
    Durable map from entity name to its status record.

    Every method raises StoreError on failure. Writes are all-or-nothing
    per entity.
    """

    @abstractmethod
    async def get(self, name: str) -> EntityStatus | None:
        """Get the record for an entity, or None if it was never stored."""

    @abstractmethod
    async def upsert(self, record: EntityStatus) -> None:
        """Insert or replace the record for record.name."""

    @abstractmethod
    async def compare_and_set(
        self,
        record: EntityStatus,
        expected: EntityStatus | None,
    ) -> bool:
        """
        Write a record only if the stored row still equals `expected`.

        Args:
            record: New record to write
            expected: Record the decision was based on; None means the row
                      must not exist yet

        Returns:
            True if written, False if the row changed underneath us
        """

    @abstractmethod
    async def list_all(self) -> list[EntityStatus]:
        """List every stored record, ordered by name."""

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None


class MemoryStatusStore(StatusStore):
    """
    In-memory status store.

    Optionally mirrors its contents to a JSON file so records survive a
    restart of a single-instance deployment.
    """

    def __init__(self, persist_path: Path | str | None = None) -> None:
        """
        Initialize the store.

        Args:
            persist_path: Path to persist records (None for memory-only)
        """
        self._persist_path = Path(persist_path) if persist_path else None
        self._records: dict[str, EntityStatus] = {}
        self._lock = asyncio.Lock()

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _load_from_file(self) -> None:
        """Load records from the persistence file."""
        if not self._persist_path:
            return

        try:
            with open(self._persist_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            for record_data in data.get("records", []):
                record = EntityStatus.model_validate(record_data)
                self._records[record.name] = record

            logger.info("Loaded status records from file", count=len(self._records))

        except (OSError, ValueError) as e:
            logger.error("Failed to load status records from file", error=str(e))

    def _save_to_file(self) -> None:
        """Save records to the persistence file."""
        if not self._persist_path:
            return

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "records": [r.model_dump(mode="json") for r in self._records.values()],
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        tmp_path = self._persist_path.with_suffix(self._persist_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self._persist_path)

    def _write(self, record: EntityStatus) -> None:
        """Apply one write, rolling back the in-memory copy if persisting fails."""
        previous = self._records.get(record.name)
        self._records[record.name] = record
        try:
            self._save_to_file()
        except OSError as e:
            if previous is None:
                del self._records[record.name]
            else:
                self._records[record.name] = previous
            raise StoreError(f"Failed to persist record for '{record.name}': {e}") from e

    async def get(self, name: str) -> EntityStatus | None:
        return self._records.get(name)

    async def upsert(self, record: EntityStatus) -> None:
        async with self._lock:
            self._write(record)

    async def compare_and_set(
        self,
        record: EntityStatus,
        expected: EntityStatus | None,
    ) -> bool:
        async with self._lock:
            if self._records.get(record.name) != expected:
                return False
            self._write(record)
            return True

    async def list_all(self) -> list[EntityStatus]:
        return sorted(self._records.values(), key=lambda r: r.name)


class SQLiteStatusStore(StatusStore):
    """
    SQLite-backed status store.

    Blocking sqlite3 calls run in a worker thread. Each call opens its own
    connection, so several handler processes may share one database file.
    """

    def __init__(self, db_path: Path | str, busy_timeout_ms: int = 5000) -> None:
        """
        Initialize the store and create the schema if needed.

        Args:
            db_path: Path to the SQLite database file
            busy_timeout_ms: How long a writer waits on a locked database
        """
        self.db_path = Path(db_path)
        self._busy_timeout_ms = busy_timeout_ms
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with closing(self._connect()) as conn:
                self._ensure_schema(conn)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialise database {self.db_path}: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=FULL")
        conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        with conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS server_status (
                    name TEXT PRIMARY KEY,
                    last_seen_at INTEGER NOT NULL DEFAULT 0,
                    state TEXT NOT NULL CHECK (state IN ('up', 'down')) DEFAULT 'down',
                    state_changed_at INTEGER NOT NULL DEFAULT 0
                )
                """
            )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> EntityStatus:
        return EntityStatus(
            name=row["name"],
            last_seen_at=row["last_seen_at"],
            state=EntityState(row["state"]),
            state_changed_at=row["state_changed_at"],
        )

    # Blocking implementations, run via asyncio.to_thread

    def _get_sync(self, name: str) -> EntityStatus | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT name, last_seen_at, state, state_changed_at FROM server_status WHERE name = ?",
                (name,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def _upsert_sync(self, record: EntityStatus) -> None:
        with closing(self._connect()) as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO server_status (name, last_seen_at, state, state_changed_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        last_seen_at = excluded.last_seen_at,
                        state = excluded.state,
                        state_changed_at = excluded.state_changed_at
                    """,
                    (record.name, record.last_seen_at, record.state.value, record.state_changed_at),
                )

    def _compare_and_set_sync(
        self,
        record: EntityStatus,
        expected: EntityStatus | None,
    ) -> bool:
        with closing(self._connect()) as conn:
            with conn:
                if expected is None:
                    cursor = conn.execute(
                        """
                        INSERT OR IGNORE INTO server_status
                            (name, last_seen_at, state, state_changed_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (record.name, record.last_seen_at, record.state.value, record.state_changed_at),
                    )
                else:
                    cursor = conn.execute(
                        """
                        UPDATE server_status
                        SET last_seen_at = ?, state = ?, state_changed_at = ?
                        WHERE name = ? AND last_seen_at = ? AND state = ? AND state_changed_at = ?
                        """,
                        (
                            record.last_seen_at,
                            record.state.value,
                            record.state_changed_at,
                            record.name,
                            expected.last_seen_at,
                            expected.state.value,
                            expected.state_changed_at,
                        ),
                    )
                return cursor.rowcount == 1

    def _list_all_sync(self) -> list[EntityStatus]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT name, last_seen_at, state, state_changed_at FROM server_status ORDER BY name"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    # Async interface

    async def get(self, name: str) -> EntityStatus | None:
        try:
            return await asyncio.to_thread(self._get_sync, name)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read record for '{name}': {e}") from e

    async def upsert(self, record: EntityStatus) -> None:
        try:
            await asyncio.to_thread(self._upsert_sync, record)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write record for '{record.name}': {e}") from e

    async def compare_and_set(
        self,
        record: EntityStatus,
        expected: EntityStatus | None,
    ) -> bool:
        if expected is not None and expected.name != record.name:
            raise ValueError("expected record belongs to a different entity")
        try:
            return await asyncio.to_thread(self._compare_and_set_sync, record, expected)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write record for '{record.name}': {e}") from e

    async def list_all(self) -> list[EntityStatus]:
        try:
            return await asyncio.to_thread(self._list_all_sync)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list records: {e}") from e


def build_store(settings: BeaconSettings) -> StatusStore:
    """Create the store backend selected by configuration."""
    if settings.store_backend == "memory":
        logger.info("Using in-memory status store", persist_path=settings.state_path)
        return MemoryStatusStore(persist_path=settings.state_path)

    logger.info("Using SQLite status store", database_path=str(settings.database_path))
    return SQLiteStatusStore(settings.database_path)

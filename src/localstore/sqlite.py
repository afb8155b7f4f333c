"""SQLite-backed snapshot store with in-memory fallback."""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from db import wal_connect
from snapshot.models import Snapshot

from .base import SnapshotStore
from .memory import InMemorySnapshotStore

logger = structlog.get_logger().bind(source="local_store")


class SqliteSnapshotStore(SnapshotStore):
    """One JSON document per namespaced key in a WAL-mode SQLite file.

    Every write is mirrored into an in-memory store. Once the database fails
    (missing directory permissions, disk full, locked file), the store stops
    touching it and serves the mirror for the rest of the process.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self._mirror = InMemorySnapshotStore()
        self.degraded = False
        try:
            self._init_db()
        except (sqlite3.Error, OSError) as e:
            self._degrade("init", e)

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)

    def _degrade(self, op: str, error: Exception) -> None:
        if not self.degraded:
            logger.warning(
                "local_store_degraded", op=op, db_path=str(self.db_path), error=str(error)
            )
        self.degraded = True

    def get(self, user_key: str) -> Optional[Snapshot]:
        if self.degraded:
            return self._mirror.get(user_key)
        try:
            with wal_connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT body FROM snapshots WHERE key = ?", (user_key,)
                ).fetchone()
        except (sqlite3.Error, OSError) as e:
            self._degrade("get", e)
            return self._mirror.get(user_key)

        if row is None:
            return None
        try:
            return Snapshot.from_dict(json.loads(row[0]))
        except ValueError as e:
            # Covers JSONDecodeError and pydantic ValidationError
            logger.warning("local_snapshot_unreadable", key=user_key, error=str(e))
            return None

    def set(self, user_key: str, snapshot: Snapshot) -> None:
        self._mirror.set(user_key, snapshot)
        if self.degraded:
            return
        body = json.dumps(snapshot.to_dict())
        now = datetime.now(timezone.utc).isoformat()
        try:
            with wal_connect(self.db_path) as conn:
                conn.execute(
                    """INSERT INTO snapshots (key, body, updated_at) VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET body = excluded.body,
                       updated_at = excluded.updated_at""",
                    (user_key, body, now),
                )
        except (sqlite3.Error, OSError) as e:
            self._degrade("set", e)

    def clear(self, user_key: str) -> None:
        self._mirror.clear(user_key)
        if self.degraded:
            return
        try:
            with wal_connect(self.db_path) as conn:
                conn.execute("DELETE FROM snapshots WHERE key = ?", (user_key,))
        except (sqlite3.Error, OSError) as e:
            self._degrade("clear", e)

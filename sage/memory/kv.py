"""Durable key-value storage behind the memory store.

Values are JSON documents. Two backends:

- ``SqliteKeyValueStore``: aiosqlite file, survives process restarts.
- ``InMemoryKeyValueStore``: process-local dict, for tests and ephemeral runs.

Both raise ``StorageFault`` on failure so callers handle one error type.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

import aiosqlite

from sage.config import settings
from sage.errors import StorageFault

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Namespaced schema keys
LOCAL_CONTEXT_KEY = "localContext"
AUDIT_TRAIL_KEY = "auditTrail"
MANIFEST_KEY = "manifest"
AUDIT_ARCHIVE_KEY = "auditArchive"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class KeyValueStore(Protocol):
    """Minimal durable key-value interface."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store. Values are round-tripped through JSON like the sqlite backend."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            msg = f"Value for '{key}' is not JSON-serializable"
            raise StorageFault(msg) from exc


class SqliteKeyValueStore:
    """Persists JSON documents in a single SQLite table.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    async def get(self, key: str) -> Any | None:
        """Return the decoded value for *key*, or None if absent."""
        try:
            db = await self._connect()
            try:
                cursor = await db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
                row = await cursor.fetchone()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to read '{key}' from {self._db_path}"
            raise StorageFault(msg) from exc

        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            msg = f"Corrupt JSON stored under '{key}'"
            raise StorageFault(msg) from exc

    async def set(self, key: str, value: Any) -> None:
        """Insert or replace the JSON value for *key*."""
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            msg = f"Value for '{key}' is not JSON-serializable"
            raise StorageFault(msg) from exc

        try:
            db = await self._connect()
            try:
                await db.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                    (key, payload),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            msg = f"Failed to write '{key}' to {self._db_path}"
            raise StorageFault(msg) from exc
        logger.debug("Stored %s (%d bytes)", key, len(payload))

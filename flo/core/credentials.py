"""Bearer credential holder and its persistent key-value backing store."""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import aiosqlite

from flo.core.constants import (
    BEARER_PREFIX,
    SOURCE_MEMORY,
    SOURCE_PERSISTED,
    STORAGE_AUTH_TOKEN,
    STORAGE_REFRESH_TOKEN,
)

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable client-side string store (the browser's localStorage, here)."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteKeyValueStore:
    """Async SQLite key-value store, one row per key."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Create database, enable WAL mode, and ensure schema exists."""
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA busy_timeout=5000")

        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Key-value store not initialized. Call initialize() first.")
        return self._conn

    async def get(self, key: str) -> str | None:
        conn = self._require_conn()
        cursor = await conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        conn = self._require_conn()
        await conn.execute(
            """
            INSERT INTO kv (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        await conn.commit()

    async def delete(self, key: str) -> None:
        conn = self._require_conn()
        await conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        await conn.commit()


@dataclass(frozen=True)
class Credential:
    """The bearer token used to authorize outbound calls."""
    token: str
    source: str = SOURCE_MEMORY

    @property
    def header_value(self) -> str:
        return f"{BEARER_PREFIX}{self.token}"


CredentialListener = Callable[[Credential | None], None]


class CredentialStore:
    """Single authority for the current credential.

    The in-memory value is authoritative and is updated synchronously, before
    any persistence await, so a caller reading ``token`` right after ``set``
    or ``clear`` always sees the new value. Listeners are notified at that
    same point, and ``epoch`` is incremented on every change so long-running
    work can tell whether the credential it started from is still current.
    """

    def __init__(self, storage: KeyValueStore):
        self.storage = storage
        self._credential: Credential | None = None
        self._refresh_token: str | None = None
        self._listeners: list[CredentialListener] = []
        self.epoch = 0

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def token(self) -> str | None:
        return self._credential.token if self._credential else None

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    def add_listener(self, listener: CredentialListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        self.epoch += 1
        self._notify()

    def _notify(self) -> None:
        for listener in self._listeners:
            try:
                listener(self._credential)
            except Exception:
                logger.exception("Credential listener failed")

    async def restore(self) -> Credential | None:
        """Load a previously persisted credential, if any."""
        token = await self.storage.get(STORAGE_AUTH_TOKEN)
        refresh_token = await self.storage.get(STORAGE_REFRESH_TOKEN)
        self._refresh_token = refresh_token or None
        if token:
            self._credential = Credential(token, SOURCE_PERSISTED)
            logger.info("Restored persisted credential")
            self._changed()
        return self._credential

    async def set(self, token: str, refresh_token: str | None = None) -> Credential:
        """Install a new credential and persist it.

        A ``refresh_token`` of None keeps the current one (refresh exchanges
        are allowed to omit it).
        """
        self._credential = Credential(token, SOURCE_MEMORY)
        if refresh_token:
            self._refresh_token = refresh_token
        self._changed()
        logger.info("Credential updated")

        await self.storage.set(STORAGE_AUTH_TOKEN, token)
        if refresh_token:
            await self.storage.set(STORAGE_REFRESH_TOKEN, refresh_token)
        return self._credential

    async def clear(self) -> None:
        """Destroy the credential in memory and in persistent storage."""
        had_credential = self._credential is not None or self._refresh_token is not None
        self._credential = None
        self._refresh_token = None
        self._changed()
        if had_credential:
            logger.info("Credential cleared")

        await self.storage.delete(STORAGE_AUTH_TOKEN)
        await self.storage.delete(STORAGE_REFRESH_TOKEN)

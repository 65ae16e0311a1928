"""SQLite-backed key/attribute store holding hotels, rooms and reviews."""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Sequence, TypeVar

from hotel_listing.core.errors import StoreFailure
from hotel_listing.hotels.models import parse_float, parse_int

SCHEMA_VERSION = 2

VALID_JOURNAL_MODES = frozenset({"delete", "truncate", "persist", "memory", "wal", "off"})
VALID_SYNCHRONOUS_MODES = frozenset({"off", "normal", "full", "extra"})

T = TypeVar("T")

logger = logging.getLogger(__name__)


class StoreHandle:
    """Query handle handed out by :meth:`SqliteStore.acquire`.

    Every query fetches its rows completely before returning, so no cursor is
    shared between callers.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    async def run(self, op: Callable[[sqlite3.Connection], T]) -> T:
        def _op() -> T:
            try:
                return op(self._connection)
            except sqlite3.Error as exc:
                raise StoreFailure(f"SQLite query failed: {exc}") from exc

        future = asyncio.ensure_future(asyncio.to_thread(_op))
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The worker thread keeps the connection busy until sqlite notices the
            # interrupt; wait for it so the lock is never released mid-statement.
            self._connection.interrupt()
            await asyncio.wait({future})
            if not future.cancelled():
                future.exception()
            raise

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return await self.run(lambda conn: conn.execute(sql, tuple(params)).fetchall())

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        return await self.run(lambda conn: conn.execute(sql, tuple(params)).fetchone())


class SqliteStore:
    """Thin async wrapper over sqlite3 for the hotel attribute tables."""

    SQLITE_PARAMETER_LIMIT = 900

    def __init__(
        self,
        db_path: Path,
        *,
        busy_timeout_ms: int = 2000,
        journal_mode: str | None = "wal",
        synchronous: str | None = "normal",
    ) -> None:
        self._path = db_path
        self._busy_timeout_ms = busy_timeout_ms
        self._journal_mode = self._normalize_journal_mode(journal_mode)
        self._synchronous = self._normalize_synchronous(synchronous)
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # lifecycle

    async def initialize(self) -> None:
        if self._connection is not None:
            return
        async with self._lock:
            if self._connection is None:
                try:
                    conn = await asyncio.to_thread(self._open_connection)
                except sqlite3.Error as exc:
                    raise StoreFailure(f"Unable to open SQLite store at {self._path}: {exc}") from exc
                self._connection = conn

    async def close(self) -> None:
        if self._connection is None:
            return
        conn = self._connection
        self._connection = None
        await asyncio.to_thread(conn.close)

    async def __aenter__(self) -> "SqliteStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.close()

    def _open_connection(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(max(self._busy_timeout_ms, 0))};")
        if self._journal_mode:
            conn.execute(f"PRAGMA journal_mode = {self._journal_mode.upper()};")
        if self._synchronous:
            conn.execute(f"PRAGMA synchronous = {self._synchronous.upper()};")
        # Numeric attributes are stored as text; these share the Python coercion rules.
        conn.create_function("as_real", 1, parse_float, deterministic=True)
        conn.create_function("as_int", 1, parse_int, deterministic=True)
        try:
            self._apply_migrations(conn)
        except sqlite3.OperationalError as exc:
            conn.close()
            logger.error(
                "SQLite migration failed (path=%s, timeout_ms=%s): %s",
                self._path,
                self._busy_timeout_ms,
                exc,
            )
            raise
        return conn

    @staticmethod
    def _normalize_journal_mode(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_JOURNAL_MODES:
            raise ValueError(
                f"Unsupported SQLite journal_mode '{value}'. Expected one of: {sorted(VALID_JOURNAL_MODES)}"
            )
        return mode

    @staticmethod
    def _normalize_synchronous(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_SYNCHRONOUS_MODES:
            raise ValueError(
                f"Unsupported SQLite synchronous mode '{value}'. Expected one of: {sorted(VALID_SYNCHRONOUS_MODES)}"
            )
        return mode

    def _apply_migrations(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        current = self._get_schema_version(conn)
        if current >= SCHEMA_VERSION:
            return
        for version in range(current + 1, SCHEMA_VERSION + 1):
            script = MIGRATIONS.get(version)
            if not script:
                raise RuntimeError(f"Missing migration script for version {version}")
            conn.executescript(script)
            conn.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)\n"
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (str(version),),
            )
        conn.commit()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        cursor = conn.execute("SELECT value FROM meta WHERE key='schema_version'")
        row = cursor.fetchone()
        if not row:
            return 0
        try:
            return int(row[0])
        except (TypeError, ValueError):
            return 0

    def _require_connection(self) -> sqlite3.Connection:
        if not self._connection:
            raise StoreFailure("SQLite store has not been initialised")
        return self._connection

    # ------------------------------------------------------------------
    # access

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[StoreHandle]:
        """Hold the connection for the duration of the block."""
        async with self._lock:
            yield StoreHandle(self._require_connection())

    def chunked(self, values: Sequence[T], *, reserved: int = 0) -> list[Sequence[T]]:
        """Split ``values`` so each chunk plus ``reserved`` other parameters fits SQLite's limit."""
        size = max(self.SQLITE_PARAMETER_LIMIT - reserved, 1)
        return [values[start : start + size] for start in range(0, len(values), size)]


def placeholders(count: int) -> str:
    return ",".join("?" for _ in range(count))


MIGRATIONS: dict[int, str] = {
    1: """
        CREATE TABLE IF NOT EXISTS users (
            ID INTEGER PRIMARY KEY,
            display_name TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS usermeta (
            umeta_id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(ID) ON DELETE CASCADE,
            meta_key TEXT NOT NULL,
            meta_value TEXT
        );

        CREATE TABLE IF NOT EXISTS posts (
            ID INTEGER PRIMARY KEY AUTOINCREMENT,
            post_author INTEGER NOT NULL REFERENCES users(ID) ON DELETE CASCADE,
            post_title TEXT NOT NULL DEFAULT '',
            post_type TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS postmeta (
            meta_id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_id INTEGER NOT NULL REFERENCES posts(ID) ON DELETE CASCADE,
            meta_key TEXT NOT NULL,
            meta_value TEXT
        );
    """,
    2: """
        CREATE INDEX IF NOT EXISTS idx_usermeta_user_key ON usermeta(user_id, meta_key);
        CREATE INDEX IF NOT EXISTS idx_posts_author_type ON posts(post_author, post_type);
        CREATE INDEX IF NOT EXISTS idx_postmeta_post_key ON postmeta(post_id, meta_key);
    """,
}


__all__ = ["MIGRATIONS", "SCHEMA_VERSION", "SqliteStore", "StoreHandle", "placeholders"]

"""Shared SQLite database backing the link, media and hierarchy registries."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from blocksync.errors import RegistryError

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS links (
    source_id TEXT PRIMARY KEY,
    target_locator TEXT,
    title TEXT NOT NULL DEFAULT '',
    kind TEXT NOT NULL DEFAULT 'document',
    slug TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_links_slug ON links(slug);

CREATE TABLE IF NOT EXISTS media (
    identifier TEXT PRIMARY KEY,
    target_asset_id TEXT NOT NULL,
    target_locator TEXT,
    source_signature TEXT NOT NULL,
    registered_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_media_asset ON media(target_asset_id);

CREATE TABLE IF NOT EXISTS hierarchy (
    source_id TEXT PRIMARY KEY,
    parent_source_id TEXT,
    position INTEGER NOT NULL,
    override INTEGER NOT NULL DEFAULT 0,
    label TEXT NOT NULL DEFAULT '',
    manual_children_json TEXT NOT NULL DEFAULT '[]'
);
"""


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


class RegistryDatabase:
    """SQLite connection in WAL mode shared by the registries.

    One connection may be used from several worker threads; statements are
    serialized with a lock. Separate instances on the same file converge
    through the unique constraints and ``ON CONFLICT`` upserts.
    """

    def __init__(self, db_path: str = ".blocksync/registry.db") -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self._lock = threading.RLock()
        try:
            # isolation_level=None => autocommit mode, giving us manual
            # transaction control for read-then-write sequences.
            self._conn = sqlite3.connect(
                db_path, isolation_level=None, timeout=5, check_same_thread=False
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise RegistryError("open", e) from e
        logger.debug("opened registry database %s", db_path)

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                raise RegistryError(sql.split(None, 1)[0].lower(), e) from e

    def fetchone(self, sql: str, params: tuple = ()) -> tuple | None:
        with self._lock:
            return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            return self.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run a read-then-write sequence under a write lock.

        BEGIN IMMEDIATE takes the database write lock up front so another
        connection cannot interleave between the read and the upsert.
        """
        with self._lock:
            cursor = self._conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                yield cursor
                cursor.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                raise RegistryError("transaction", e) from e
            except Exception:
                self._rollback()
                raise

    def _rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.rollback()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

"""LinkRegistry: source document id -> target locator."""

from __future__ import annotations

import logging
import re
import sqlite3
import unicodedata
from datetime import datetime
from typing import Literal

from blocksync.ids import normalize_source_id
from blocksync.registry.database import RegistryDatabase, now_iso
from blocksync.registry.models import LinkEntry

logger = logging.getLogger(__name__)

_COLUMNS = "source_id, target_locator, title, kind, slug, created_at, updated_at"


def slugify(text: str, max_length: int = 80) -> str:
    """Lower-case ASCII slug. Emoji and other non-ASCII symbols are dropped."""
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    folded = re.sub(r"[^\w\s-]", "", folded.lower())
    folded = re.sub(r"[\s_-]+", "-", folded).strip("-")
    return folded[:max_length].rstrip("-")


def _row_to_entry(row: tuple) -> LinkEntry:
    source_id, locator, title, kind, slug, created_at, updated_at = row
    return LinkEntry(
        source_id=source_id,
        target_locator=locator,
        title=title,
        kind=kind,
        slug=slug,
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at),
    )


class LinkRegistry:
    """Maps source document ids to resolved target locators.

    Every write is an idempotent upsert keyed by the normalized source id,
    so re-registering the same document from any worker converges to a
    single entry.
    """

    def __init__(self, db: RegistryDatabase) -> None:
        self._db = db

    def register(
        self,
        source_id: str,
        target_locator: str | None,
        title: str = "",
        kind: Literal["document", "collection"] = "document",
    ) -> LinkEntry:
        """Create or update the entry for *source_id* and return it."""
        source_id = normalize_source_id(source_id)
        now = now_iso()
        with self._db.transaction() as cur:
            slug = self._slug_for(cur, source_id, title)
            cur.execute(
                f"INSERT INTO links ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(source_id) DO UPDATE SET "
                "target_locator = excluded.target_locator, title = excluded.title, "
                "kind = excluded.kind, slug = excluded.slug, updated_at = excluded.updated_at",
                (source_id, target_locator, title, kind, slug, now, now),
            )
            row = cur.execute(
                f"SELECT {_COLUMNS} FROM links WHERE source_id = ?", (source_id,)
            ).fetchone()
        logger.debug("registered link %s -> %s", source_id, target_locator)
        return _row_to_entry(row)

    def register_stub(
        self,
        source_id: str,
        title: str = "",
        kind: Literal["document", "collection"] = "document",
    ) -> LinkEntry:
        """Record a known-but-unsynced document. Existing entries are left alone."""
        source_id = normalize_source_id(source_id)
        now = now_iso()
        with self._db.transaction() as cur:
            existing = cur.execute(
                f"SELECT {_COLUMNS} FROM links WHERE source_id = ?", (source_id,)
            ).fetchone()
            if existing is not None:
                return _row_to_entry(existing)
            slug = self._slug_for(cur, source_id, title)
            cur.execute(
                f"INSERT INTO links ({_COLUMNS}) VALUES (?, NULL, ?, ?, ?, ?, ?) "
                "ON CONFLICT(source_id) DO NOTHING",
                (source_id, title, kind, slug, now, now),
            )
            row = cur.execute(
                f"SELECT {_COLUMNS} FROM links WHERE source_id = ?", (source_id,)
            ).fetchone()
        return _row_to_entry(row)

    def resolve(self, source_id: str) -> str | None:
        """Return the target locator, or None if the document is unknown or a stub."""
        row = self._db.fetchone(
            "SELECT target_locator FROM links WHERE source_id = ?",
            (normalize_source_id(source_id),),
        )
        return row[0] if row else None

    def get(self, source_id: str) -> LinkEntry | None:
        row = self._db.fetchone(
            f"SELECT {_COLUMNS} FROM links WHERE source_id = ?",
            (normalize_source_id(source_id),),
        )
        return _row_to_entry(row) if row else None

    def find_by_slug(self, slug: str) -> LinkEntry | None:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM links WHERE slug = ?", (slug,))
        return _row_to_entry(row) if row else None

    def all(self) -> list[LinkEntry]:
        rows = self._db.fetchall(f"SELECT {_COLUMNS} FROM links ORDER BY created_at, source_id")
        return [_row_to_entry(r) for r in rows]

    def count(self) -> int:
        row = self._db.fetchone("SELECT COUNT(*) FROM links")
        return row[0] if row else 0

    def delete(self, source_id: str) -> bool:
        cur = self._db.execute(
            "DELETE FROM links WHERE source_id = ?", (normalize_source_id(source_id),)
        )
        return cur.rowcount > 0

    # -- helpers ---------------------------------------------------------------

    def _slug_for(self, cur: sqlite3.Cursor, source_id: str, title: str) -> str:
        """Keep the current slug while the title is unchanged, else derive a unique one."""
        row = cur.execute(
            "SELECT title, slug FROM links WHERE source_id = ?", (source_id,)
        ).fetchone()
        if row is not None and row[0] == title:
            return row[1]

        base = slugify(title) or slugify(source_id) or "untitled"
        candidate = base
        n = 1
        while cur.execute(
            "SELECT 1 FROM links WHERE slug = ? AND source_id != ?", (candidate, source_id)
        ).fetchone():
            candidate = f"{base}-{n}"
            n += 1
        return candidate

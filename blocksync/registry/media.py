"""MediaRegistry: stable asset identity -> copied target asset."""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime
from enum import Enum
from urllib.parse import urlsplit, urlunsplit

from blocksync.config.models import MediaConfig
from blocksync.ids import normalize_source_id
from blocksync.registry.database import RegistryDatabase, now_iso
from blocksync.registry.models import MediaEntry, MediaStats

logger = logging.getLogger(__name__)

_COLUMNS = "identifier, target_asset_id, target_locator, source_signature, registered_at, updated_at"

# Identifiers are embedded in placeholder comments
_UNSAFE_IDENT_RE = re.compile(r"[^0-9A-Za-z_.-]")


class MediaAction(str, Enum):
    MUST_COPY = "must_copy"
    LINK_THROUGH = "link_through"


def classify(url: str, policy: MediaConfig | None = None) -> MediaAction:
    """Decide whether an asset URL must be copied or can be linked directly.

    Expiring source URLs are always copied. Otherwise the first matching
    policy rule wins, then the configured default.
    """
    policy = policy or MediaConfig()
    lowered = url.lower()
    if any(p.lower() in lowered for p in policy.expiring_patterns):
        return MediaAction.MUST_COPY
    for rule in policy.policies:
        if rule.pattern.lower() in lowered:
            return MediaAction(rule.action)
    return MediaAction(policy.default_action)


def strip_volatile(url: str) -> str:
    """Drop the query string and fragment, where expiring tokens live."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url.split("?", 1)[0].split("#", 1)[0]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def source_signature(url: str) -> str:
    """Fingerprint of the asset behind *url*, stable across token rotation."""
    return hashlib.sha256(strip_volatile(url).encode()).hexdigest()[:12]


def media_identifier(document_id: str, block_id: str) -> str:
    """Registry key for an asset, built from document and block identity."""
    parts = (normalize_source_id(document_id), normalize_source_id(block_id))
    return ":".join(_UNSAFE_IDENT_RE.sub("_", part) for part in parts)


def _row_to_entry(row: tuple) -> MediaEntry:
    identifier, asset_id, locator, signature, registered_at, updated_at = row
    return MediaEntry(
        identifier=identifier,
        target_asset_id=asset_id,
        target_locator=locator,
        source_signature=signature,
        registered_at=datetime.fromisoformat(registered_at),
        updated_at=datetime.fromisoformat(updated_at),
    )


class MediaRegistry:
    """Tracks which copied asset stands in for each source asset.

    One entry per identifier. Re-registering with a new signature refreshes
    the entry in place instead of adding a second one.
    """

    def __init__(self, db: RegistryDatabase) -> None:
        self._db = db

    def register(
        self,
        identifier: str,
        target_asset_id: str,
        source_signature: str,
        target_locator: str | None = None,
    ) -> MediaEntry:
        now = now_iso()
        with self._db.transaction() as cur:
            cur.execute(
                f"INSERT INTO media ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(identifier) DO UPDATE SET "
                "target_asset_id = excluded.target_asset_id, "
                "target_locator = COALESCE(excluded.target_locator, media.target_locator), "
                "source_signature = excluded.source_signature, updated_at = excluded.updated_at",
                (identifier, target_asset_id, target_locator, source_signature, now, now),
            )
            row = cur.execute(
                f"SELECT {_COLUMNS} FROM media WHERE identifier = ?", (identifier,)
            ).fetchone()
        logger.debug("registered media %s -> %s", identifier, target_asset_id)
        return _row_to_entry(row)

    def find(self, identifier: str) -> str | None:
        row = self._db.fetchone(
            "SELECT target_asset_id FROM media WHERE identifier = ?", (identifier,)
        )
        return row[0] if row else None

    def get(self, identifier: str) -> MediaEntry | None:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM media WHERE identifier = ?", (identifier,))
        return _row_to_entry(row) if row else None

    def locator(self, identifier: str) -> str | None:
        row = self._db.fetchone(
            "SELECT target_locator FROM media WHERE identifier = ?", (identifier,)
        )
        return row[0] if row else None

    def needs_refresh(self, identifier: str, url: str) -> bool:
        """True when the asset was never copied or its source has changed."""
        entry = self.get(identifier)
        return entry is None or entry.source_signature != source_signature(url)

    def find_by_asset(self, target_asset_id: str) -> list[MediaEntry]:
        rows = self._db.fetchall(
            f"SELECT {_COLUMNS} FROM media WHERE target_asset_id = ? ORDER BY identifier",
            (target_asset_id,),
        )
        return [_row_to_entry(r) for r in rows]

    def all(self) -> list[MediaEntry]:
        rows = self._db.fetchall(f"SELECT {_COLUMNS} FROM media ORDER BY registered_at, identifier")
        return [_row_to_entry(r) for r in rows]

    def delete(self, identifier: str) -> bool:
        cur = self._db.execute("DELETE FROM media WHERE identifier = ?", (identifier,))
        return cur.rowcount > 0

    def count(self) -> int:
        row = self._db.fetchone("SELECT COUNT(*) FROM media")
        return row[0] if row else 0

    def stats(self) -> MediaStats:
        row = self._db.fetchone(
            "SELECT COUNT(*), COUNT(target_locator), COUNT(DISTINCT target_asset_id) FROM media"
        )
        total, with_locator, distinct = row if row else (0, 0, 0)
        return MediaStats(total=total, with_locator=with_locator, distinct_assets=distinct)

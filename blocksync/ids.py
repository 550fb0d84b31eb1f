"""Source identifier normalization and internal-reference detection."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_HEX32_RE = re.compile(r"^[0-9a-f]{32}$")

# "/<id>" with an optional path, query or fragment suffix
_RELATIVE_REF_RE = re.compile(r"^/([0-9a-fA-F]{32})(?:[/?#].*)?$")

_TRAILING_HEX_RE = re.compile(r"(?:^|[^0-9a-fA-F])([0-9a-fA-F]{32})$")
_UUID_RE = re.compile(
    r"^([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})$"
)


def normalize_source_id(source_id: str) -> str:
    """Canonical form of a source id.

    UUID-shaped ids are stored without dashes and lower-cased, so the dashed
    and compact spellings of one document map to the same registry entry.
    Anything else is returned stripped but otherwise untouched.
    """
    stripped = source_id.strip()
    compact = stripped.replace("-", "").lower()
    if _HEX32_RE.match(compact):
        return compact
    return stripped


def is_source_id(value: str) -> bool:
    """True if *value* is a normalized source id: 32 lower-case hex digits."""
    return bool(_HEX32_RE.match(value))


def extract_reference(url: str, source_hosts: list[str] | tuple[str, ...]) -> str | None:
    """Return the referenced source id if *url* points at another source document."""
    if not url:
        return None

    m = _RELATIVE_REF_RE.match(url)
    if m:
        return m.group(1).lower()

    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or parts.hostname not in source_hosts:
        return None

    segment = parts.path.rstrip("/").rsplit("/", 1)[-1]
    m = _TRAILING_HEX_RE.search(segment) or _UUID_RE.match(segment)
    if m:
        return normalize_source_id(m.group(1))
    return None

"""Local collaborators: a JSON directory fetcher, a file content store and an asset store."""

from __future__ import annotations

import json
import logging
import re
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import unquote, urlsplit

import requests
import yaml

from blocksync.blocks.models import AssetRequest, SourceDocument
from blocksync.config.models import MediaConfig, OutputConfig
from blocksync.errors import AssetCopyError
from blocksync.ids import normalize_source_id
from blocksync.sync.interfaces import AssetCopy

logger = logging.getLogger(__name__)


def _sanitize_name(name: str) -> str:
    """Make an identifier safe for use as a filename.

    Replaces ``/`` and ``:`` with ``--``, strips ``..`` segments, and removes
    characters that are problematic on common filesystems.
    """
    safe = name.replace("/", "--").replace(":", "--")
    safe = safe.replace("..", "")
    safe = re.sub(r"[^\w\-\.@]", "", safe)
    safe = re.sub(r"-{3,}", "--", safe)
    if not safe or safe.strip(".") == "":
        safe = "_unnamed"
    return safe


def _join_url(base_url: str, *parts: str) -> str:
    return "/".join([base_url.rstrip("/"), *parts])


class JsonDirectoryFetcher:
    """Reads exported documents from ``*.json`` files in a directory."""

    def __init__(self, source_dir: str | Path) -> None:
        self.source_dir = Path(source_dir)
        self._paths: dict[str, Path] | None = None

    def _index(self) -> dict[str, Path]:
        if self._paths is None:
            paths: dict[str, Path] = {}
            for path in sorted(self.source_dir.glob("*.json")):
                try:
                    raw = json.loads(path.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning("skipping unreadable export %s: %s", path, e)
                    continue
                if isinstance(raw, dict) and raw.get("id"):
                    paths[normalize_source_id(str(raw["id"]))] = path
            self._paths = paths
        return self._paths

    def list_ids(self) -> list[str]:
        return list(self._index())

    def fetch(self, source_id: str) -> SourceDocument:
        path = self._index().get(normalize_source_id(source_id))
        if path is None:
            raise KeyError(f"No exported document with id {source_id}")
        raw = json.loads(path.read_text(encoding="utf-8"))
        return SourceDocument.from_api(raw)


class FileContentStore:
    """Writes converted documents to ``<base_dir>/<source_id>.html``.

    Keeps an ``_index.yaml`` with title, parent and locator per document.
    Safe to call from several worker threads.
    """

    def __init__(self, config: OutputConfig) -> None:
        self.config = config
        self.base_dir = Path(config.base_dir)
        self._lock = threading.Lock()

    def path_for(self, source_id: str) -> Path:
        return self.base_dir / f"{_sanitize_name(normalize_source_id(source_id))}.html"

    def locator_for(self, source_id: str) -> str:
        return _join_url(self.config.base_url, self.path_for(source_id).stem + "/")

    def upsert(self, source_id: str, title: str, markup: str, parent_id: str | None = None) -> str:
        dest = self.path_for(source_id)
        locator = self.locator_for(source_id)
        with self._lock:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(markup, encoding="utf-8")
            if self.config.create_index:
                self._update_index(normalize_source_id(source_id), title, parent_id, locator)
        logger.info("wrote %s (%d bytes)", dest, len(markup))
        return locator

    def get(self, source_id: str) -> str | None:
        path = self.path_for(source_id)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def replace(self, source_id: str, markup: str) -> None:
        path = self.path_for(source_id)
        with self._lock:
            path.write_text(markup, encoding="utf-8")
        logger.debug("rewrote %s", path)

    def list_ids(self) -> list[str]:
        if not self.base_dir.exists():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.html"))

    def index(self) -> list[dict]:
        index_path = self.base_dir / "_index.yaml"
        if not index_path.exists():
            return []
        loaded = yaml.safe_load(index_path.read_text(encoding="utf-8"))
        return loaded if isinstance(loaded, list) else []

    # -- index management --------------------------------------------------

    def _update_index(self, source_id: str, title: str, parent_id: str | None, locator: str) -> None:
        """Upsert an entry in _index.yaml for the written document."""
        index_path = self.base_dir / "_index.yaml"
        entries = [e for e in self.index() if e.get("source_id") != source_id]
        entries.append({
            "source_id": source_id,
            "title": title,
            "parent_id": parent_id,
            "locator": locator,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        index_path.write_text(
            yaml.safe_dump(entries, default_flow_style=False, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        logger.debug("updated index %s (%d entries)", index_path, len(entries))


class LocalAssetStore:
    """Copies assets into ``assets_dir``; local paths are copied, http(s) URLs downloaded."""

    def __init__(self, config: MediaConfig, base_url: str = "/") -> None:
        self.assets_dir = Path(config.assets_dir)
        self.base_url = base_url
        self.timeout = config.download_timeout

    def copy(self, request: AssetRequest) -> AssetCopy:
        parts = urlsplit(request.url)
        suffix = Path(unquote(parts.path)).suffix.lower()[:10]
        name = f"{_sanitize_name(request.identifier)}-{request.source_signature}{suffix}"
        dest = self.assets_dir / name
        self.assets_dir.mkdir(parents=True, exist_ok=True)

        if parts.scheme in ("http", "https"):
            self._download(request.url, dest)
        elif parts.scheme in ("", "file"):
            source = Path(unquote(parts.path))
            if not source.is_file():
                raise AssetCopyError(request.url, "file not found")
            shutil.copyfile(source, dest)
        else:
            raise AssetCopyError(request.url, f"unsupported scheme {parts.scheme!r}")

        logger.info("copied asset %s -> %s", request.identifier, dest)
        return AssetCopy(asset_id=name, locator=_join_url(self.base_url, "assets", name))

    def _download(self, url: str, dest: Path) -> None:
        try:
            with requests.get(url, stream=True, timeout=self.timeout) as resp:
                resp.raise_for_status()
                with open(dest, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=65536):
                        f.write(chunk)
        except requests.RequestException as e:
            dest.unlink(missing_ok=True)
            raise AssetCopyError(url, str(e)) from e

"""Protocols for the collaborators a sync batch talks to."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from blocksync.blocks.models import AssetRequest, SourceDocument


class AssetCopy(BaseModel):
    """Where an asset store put a copied asset."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    locator: str


@runtime_checkable
class ContentFetcher(Protocol):
    """Supplies fully materialized documents; paging and retries stay behind this call."""

    def fetch(self, source_id: str) -> SourceDocument: ...

    def list_ids(self) -> list[str]: ...


@runtime_checkable
class ContentStore(Protocol):
    """Target content system. Upserts are keyed by the source document id."""

    def upsert(self, source_id: str, title: str, markup: str, parent_id: str | None = None) -> str: ...

    def get(self, source_id: str) -> str | None: ...

    def replace(self, source_id: str, markup: str) -> None: ...

    def list_ids(self) -> list[str]: ...


@runtime_checkable
class AssetStore(Protocol):
    """Copies source assets into the target system."""

    def copy(self, request: AssetRequest) -> AssetCopy: ...

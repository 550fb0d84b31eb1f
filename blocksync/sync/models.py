from __future__ import annotations

from pydantic import BaseModel

from blocksync.blocks.models import AssetRequest, Diagnostic


class SyncError(BaseModel):
    source_id: str
    error: str


class DocumentResult(BaseModel):
    source_id: str
    title: str = ""
    locator: str | None = None
    failed: bool = False
    diagnostics: list[Diagnostic] = []
    pending_refs: list[str] = []
    asset_requests: list[AssetRequest] = []


class ResolutionReport(BaseModel):
    documents_checked: int = 0
    documents_updated: int = 0
    links_resolved: int = 0
    links_refreshed: int = 0
    links_unresolved: int = 0
    media_resolved: int = 0
    media_unresolved: int = 0
    diagnostics: list[Diagnostic] = []

    def merge(self, other: ResolutionReport) -> None:
        self.links_resolved += other.links_resolved
        self.links_refreshed += other.links_refreshed
        self.links_unresolved += other.links_unresolved
        self.media_resolved += other.media_resolved
        self.media_unresolved += other.media_unresolved
        self.diagnostics.extend(other.diagnostics)


class SyncReport(BaseModel):
    synced: int = 0
    failed: int = 0
    assets_copied: int = 0
    errors: list[SyncError] = []
    diagnostics: list[Diagnostic] = []
    resolution: ResolutionReport | None = None
    duration: float = 0.0

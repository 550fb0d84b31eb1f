"""Pydantic models for registry entries."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class LinkEntry(BaseModel):
    """Mapping from a source document to where it lives in the target system.

    An entry without a locator is a stub: the document is known (e.g. from a
    child page block) but has not been synced yet.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    target_locator: str | None = None
    title: str = ""
    kind: Literal["document", "collection"] = "document"
    slug: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_stub(self) -> bool:
        return self.target_locator is None


class MediaEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    target_asset_id: str
    target_locator: str | None = None
    source_signature: str
    registered_at: datetime
    updated_at: datetime


class MediaStats(BaseModel):
    total: int = 0
    with_locator: int = 0
    distinct_assets: int = 0

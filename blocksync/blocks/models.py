"""Pydantic models for source block trees and conversion results."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from blocksync.ids import normalize_source_id

logger = logging.getLogger(__name__)


class DiagnosticCode(str, Enum):
    unsupported_block = "unsupported_block"
    conversion_failed = "conversion_failed"
    malformed_span = "malformed_span"
    unsafe_link = "unsafe_link"
    depth_exceeded = "depth_exceeded"
    empty_table = "empty_table"
    dropped_row = "dropped_row"
    unresolved_reference = "unresolved_reference"
    unresolved_media = "unresolved_media"
    asset_copy_failed = "asset_copy_failed"
    cycle_detected = "cycle_detected"
    document_failed = "document_failed"


class Diagnostic(BaseModel):
    """A non-fatal problem found while converting, resolving or building."""

    model_config = ConfigDict(frozen=True)

    code: DiagnosticCode
    message: str
    severity: Literal["info", "warning", "error"] = "warning"
    document_id: str | None = None
    block_id: str | None = None
    source_id: str | None = None


class Annotations(BaseModel):
    """Inline style flags for a span. Field order carries no meaning."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"

    @field_validator("bold", "italic", "strikethrough", "underline", "code", mode="before")
    @classmethod
    def _none_is_false(cls, v: object) -> object:
        return False if v is None else v

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, v: object) -> object:
        return v if isinstance(v, str) and v else "default"


class RichTextSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str = ""
    annotations: Annotations = Field(default_factory=Annotations)
    link: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> RichTextSpan:
        """Build a span from a source rich-text item (text, mention or equation)."""
        kind = item.get("type", "text")
        content = item.get("plain_text")
        link = item.get("href")

        text = item.get("text")
        if isinstance(text, dict):
            content = text.get("content", content)
            link_obj = text.get("link")
            if isinstance(link_obj, dict) and link_obj.get("url"):
                link = link_obj["url"]
        elif kind == "equation":
            equation = item.get("equation")
            if isinstance(equation, dict):
                content = equation.get("expression", content)
        elif kind == "mention":
            # Page mentions become internal references; anything else keeps plain_text
            mention = item.get("mention")
            page = mention.get("page") if isinstance(mention, dict) else None
            if isinstance(page, dict) and page.get("id"):
                link = "/" + normalize_source_id(str(page["id"]))

        raw_annotations = item.get("annotations")
        annotations = Annotations()
        if isinstance(raw_annotations, dict):
            try:
                annotations = Annotations.model_validate(raw_annotations)
            except ValidationError:
                logger.debug("ignoring malformed annotations: %r", raw_annotations)

        return cls(
            content=content if isinstance(content, str) else "",
            annotations=annotations,
            link=link if isinstance(link, str) and link else None,
        )


def parse_rich_text(items: object) -> tuple[list[RichTextSpan], int]:
    """Parse a source rich-text array.

    Returns the spans plus the number of malformed items that were skipped.
    A bare string is accepted as a single unstyled span.
    """
    if items is None:
        return [], 0
    if isinstance(items, str):
        return [RichTextSpan(content=items)], 0
    if not isinstance(items, list):
        return [], 1

    spans: list[RichTextSpan] = []
    malformed = 0
    for item in items:
        if not isinstance(item, dict):
            malformed += 1
            continue
        spans.append(RichTextSpan.from_api(item))
    return spans, malformed


def to_plain_text(spans: list[RichTextSpan]) -> str:
    return "".join(span.content for span in spans)


class BlockNode(BaseModel):
    """One node of a source content tree."""

    id: str = ""
    type: str = "unsupported"
    payload: dict[str, Any] = Field(default_factory=dict)
    children: list[BlockNode] = Field(default_factory=list)
    has_children: bool = False

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> BlockNode:
        """Build a block tree from the source JSON shape.

        The payload is the object stored under the block's own type key.
        Children may live at the top level or inside the payload.
        """
        block_type = raw.get("type") or "unsupported"
        payload = raw.get(block_type)
        if not isinstance(payload, dict):
            payload = {}

        children_raw = raw.get("children")
        if children_raw is None:
            children_raw = payload.get("children")
        children = [cls.from_api(c) for c in children_raw or [] if isinstance(c, dict)]

        return cls(
            id=str(raw.get("id", "")),
            type=str(block_type),
            payload={k: v for k, v in payload.items() if k != "children"},
            children=children,
            has_children=bool(raw.get("has_children")) or bool(children),
        )

    def rich_text(self, key: str = "rich_text") -> list[RichTextSpan]:
        spans, _ = parse_rich_text(self.payload.get(key))
        return spans

    def plain_text(self, key: str = "rich_text") -> str:
        return to_plain_text(self.rich_text(key))


class SourceDocument(BaseModel):
    """A fully materialized source document as supplied by a fetcher."""

    source_id: str
    title: str = ""
    parent_id: str | None = None
    kind: Literal["document", "collection"] = "document"
    blocks: list[BlockNode] = Field(default_factory=list)
    last_edited: str | None = None

    @field_validator("source_id")
    @classmethod
    def _normalize_id(cls, v: str) -> str:
        return normalize_source_id(v)

    @field_validator("parent_id")
    @classmethod
    def _normalize_parent(cls, v: str | None) -> str | None:
        return normalize_source_id(v) if v else None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> SourceDocument:
        """Build a document from a JSON export: page metadata plus a ``blocks`` array."""
        parent = raw.get("parent_id")
        parent_obj = raw.get("parent")
        if parent is None and isinstance(parent_obj, dict):
            parent = parent_obj.get("page_id") or parent_obj.get("database_id")

        return cls(
            source_id=str(raw.get("id", "")),
            title=_extract_title(raw),
            parent_id=parent,
            kind="collection" if raw.get("object") == "database" else "document",
            blocks=[BlockNode.from_api(b) for b in raw.get("blocks") or [] if isinstance(b, dict)],
            last_edited=raw.get("last_edited_time"),
        )


def _extract_title(raw: dict[str, Any]) -> str:
    title = raw.get("title")
    if isinstance(title, str):
        return title
    if isinstance(title, list):
        return to_plain_text(parse_rich_text(title)[0])

    # Page objects keep the title inside a "title"-typed property
    properties = raw.get("properties")
    if not isinstance(properties, dict):
        return ""
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return to_plain_text(parse_rich_text(prop.get("title"))[0])
    return ""


class AssetRequest(BaseModel):
    """A request for the asset store to copy a source asset."""

    model_config = ConfigDict(frozen=True)

    url: str
    identifier: str
    source_signature: str
    reason: Literal["new", "refresh"] = "new"


class ConversionResult(BaseModel):
    """Markup for one document plus everything the caller needs to follow up on."""

    document_id: str
    markup: str
    diagnostics: list[Diagnostic] = []
    pending_refs: list[str] = []
    asset_requests: list[AssetRequest] = []

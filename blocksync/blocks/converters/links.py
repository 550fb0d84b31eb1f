"""Converters for blocks that point at other documents."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode, DiagnosticCode
from blocksync.ids import normalize_source_id

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry


class ChildPageConverter(BlockConverter):
    """A sub-document embedded in its parent; the block id is the child's source id."""

    block_types = ("child_page", "child_database")

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        source_id = normalize_source_id(block.id)
        title = str(block.payload.get("title") or "").strip()
        if not title:
            title = ctx.reference_title(source_id) or "Untitled"
        kind = "database" if block.type == "child_database" else "page"
        link = ctx.reference(source_id, html.escape(title))
        return editor_block(
            "paragraph",
            f'<p class="blocksync-child-{kind}">{link}</p>',
            {"className": f"blocksync-child-{kind}"},
        )


class LinkToPageConverter(BlockConverter):
    block_types = ("link_to_page",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        payload = block.payload
        target = payload.get("page_id") or payload.get("database_id")
        if not target:
            ctx.add_diagnostic(
                DiagnosticCode.unsupported_block, "link_to_page block has no target", severity="info"
            )
            return editor_block("paragraph", "<p>&nbsp;</p>")
        source_id = normalize_source_id(str(target))
        title = ctx.reference_title(source_id) or "Linked page"
        link = ctx.reference(source_id, html.escape(title))
        return editor_block(
            "paragraph",
            f'<p class="blocksync-link-to-page">{link}</p>',
            {"className": "blocksync-link-to-page"},
        )

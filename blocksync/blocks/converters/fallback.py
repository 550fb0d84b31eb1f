"""Fallback converter for block types nothing else handles."""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode
from blocksync.blocks.richtext import sanitize_url

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

_TYPE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_-]")

# Payload keys holding rich text, in the order they are tried
_TEXT_KEYS = ("rich_text", "title", "caption", "text")


class FallbackConverter(BlockConverter):
    """Degrades any block to a plain paragraph with whatever text it carries.

    Children are still converted so nested content is not lost. A block
    with no extractable text leaves a comment marker behind.
    """

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        text = self._extract(block, ctx)
        block_type = _TYPE_CHARS_RE.sub("", block.type) or "unknown"
        if text:
            markup = editor_block(
                "paragraph",
                f'<p class="blocksync-unsupported-block">{text}</p>',
                {"className": "blocksync-unsupported-block"},
            )
        else:
            markup = f"<!-- blocksync:unsupported {block_type} -->\n"
        return markup + registry.convert_children(block.children, ctx)

    @staticmethod
    def _extract(block: BlockNode, ctx: ConversionContext) -> str:
        payload = block.payload
        for key in _TEXT_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return html.escape(value)
            if isinstance(value, list) and block.plain_text(key).strip():
                return ctx.rich_text(block, key)

        url = payload.get("url")
        if isinstance(url, str) and url:
            safe = sanitize_url(url, ctx.conversion.allowed_schemes)
            if safe:
                escaped = html.escape(safe, quote=True)
                return f'Link: <a href="{escaped}">{html.escape(url)}</a>'
            return f"Link: {html.escape(url)}"
        return ""

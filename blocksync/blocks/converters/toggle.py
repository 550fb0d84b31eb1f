"""Toggle and callout converters: a rich-text header over nested children."""

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

DEFAULT_CALLOUT_ICON = "💡"

_COLOR_NAME_RE = re.compile(r"[^a-z0-9-]")


def callout_color(color: object) -> str:
    """Color name for the callout class; background suffixes are dropped."""
    if not isinstance(color, str):
        return "default"
    name = color.lower().removesuffix("_background")
    name = _COLOR_NAME_RE.sub("", name)
    return name or "default"


class ToggleConverter(BlockConverter):
    block_types = ("toggle",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        summary = ctx.rich_text(block)
        inner = registry.convert_children(block.children, ctx)
        return editor_block(
            "details",
            f'<details class="wp-block-details blocksync-toggle"><summary>{summary}</summary>'
            f'<div class="blocksync-toggle-content">{inner}</div></details>',
        )


class CalloutConverter(BlockConverter):
    block_types = ("callout",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        color = callout_color(block.payload.get("color"))
        icon = self._render_icon(block.payload.get("icon"))
        text = ctx.rich_text(block)
        inner = registry.convert_children(block.children, ctx)
        css = f"wp-block-group blocksync-callout blocksync-callout-{color}"
        return editor_block(
            "group",
            f'<div class="{css}">'
            f'<span class="blocksync-callout-icon">{icon}</span>'
            f'<div class="blocksync-callout-body"><p>{text}</p>{inner}</div>'
            "</div>",
            {"className": f"blocksync-callout blocksync-callout-{color}"},
        )

    @staticmethod
    def _render_icon(icon: object) -> str:
        if not isinstance(icon, dict):
            return DEFAULT_CALLOUT_ICON
        kind = icon.get("type")
        if kind == "emoji" and icon.get("emoji"):
            return html.escape(str(icon["emoji"]))
        if kind in ("external", "file"):
            url = (icon.get(kind) or {}).get("url")
            safe = sanitize_url(url, ("http", "https"))
            if safe:
                return f'<img src="{html.escape(safe, quote=True)}" alt="" width="20" height="20"/>'
        return DEFAULT_CALLOUT_ICON

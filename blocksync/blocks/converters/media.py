"""Converters for image, video, audio and file blocks."""

from __future__ import annotations

import html
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlsplit

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.converters.embed import detect_provider, render_embed
from blocksync.blocks.models import BlockNode, DiagnosticCode
from blocksync.blocks.placeholders import media_element, pending_media
from blocksync.blocks.richtext import sanitize_url
from blocksync.registry.media import MediaAction, classify

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

logger = logging.getLogger(__name__)

# block type -> element kind
MEDIA_KINDS: dict[str, str] = {
    "image": "image",
    "video": "video",
    "audio": "audio",
    "file": "file",
    "pdf": "file",
}

_WEB_SCHEMES = ("http", "https")


def media_url(payload: dict) -> tuple[str | None, bool]:
    """Return ``(url, source_hosted)`` for a media payload."""
    kind = payload.get("type")
    if kind in ("file", "external"):
        obj = payload.get(kind)
        if isinstance(obj, dict) and obj.get("url"):
            return str(obj["url"]), kind == "file"
    for kind in ("file", "external"):
        obj = payload.get(kind)
        if isinstance(obj, dict) and obj.get("url"):
            return str(obj["url"]), kind == "file"
    return None, False


def _file_name(url: str) -> str:
    try:
        path = urlsplit(url).path
    except ValueError:
        return "Download"
    return unquote(PurePosixPath(path).name) or "Download"


class MediaConverter(BlockConverter):
    """Renders media blocks.

    Assets hosted by the source are copied: the converter asks the context
    for the copied locator and falls back to a placeholder plus a copy
    request. Everything else is classified by the media policy and either
    copied the same way or linked directly.
    """

    block_types = tuple(MEDIA_KINDS)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        kind = MEDIA_KINDS[block.type]
        url, hosted = media_url(block.payload)
        # File blocks carry the caption in their link label instead
        caption = ""
        if kind != "file" and ctx.has_text(block, "caption"):
            caption = ctx.rich_text(block, "caption")

        if not url:
            ctx.add_diagnostic(DiagnosticCode.unresolved_media, f"{block.type} block has no URL")
            missing = caption or html.escape(block.plain_text("caption").strip()) or "[Missing media]"
            return self._wrap(kind, f'<span class="blocksync-missing-media">{missing}</span>', "")

        if kind == "video" and not hosted and detect_provider(url):
            safe = sanitize_url(url, _WEB_SCHEMES)
            if safe:
                return render_embed(safe, caption)

        action = MediaAction.MUST_COPY if hosted else classify(url, ctx.media_policy)
        label = self._label(kind, block, url)

        if action is MediaAction.LINK_THROUGH:
            safe = sanitize_url(url, _WEB_SCHEMES)
            if safe is None or not safe.startswith(_WEB_SCHEMES):
                ctx.add_diagnostic(
                    DiagnosticCode.unsafe_link, f"Media URL with disallowed scheme dropped: {url[:80]!r}"
                )
                return self._wrap(kind, f'<span class="blocksync-missing-media">{label}</span>', caption)
            return self._wrap(kind, media_element(kind, safe, label), caption)

        identifier, locator = ctx.asset_locator(block.id, url)
        if locator:
            return self._wrap(kind, media_element(kind, locator, label), caption)
        return self._wrap(kind, pending_media(kind, identifier, label), caption)

    @staticmethod
    def _label(kind: str, block: BlockNode, url: str) -> str:
        caption = block.plain_text("caption").strip()
        if kind == "image":
            return html.escape(caption)
        name = str(block.payload.get("name") or "").strip()
        return html.escape(caption or name or _file_name(url))

    @staticmethod
    def _wrap(kind: str, element: str, caption: str) -> str:
        if kind == "file":
            return editor_block("file", f'<div class="wp-block-file">{element}</div>')
        figcaption = f'<figcaption class="wp-element-caption">{caption}</figcaption>' if caption else ""
        return editor_block(kind, f'<figure class="wp-block-{kind}">{element}{figcaption}</figure>')

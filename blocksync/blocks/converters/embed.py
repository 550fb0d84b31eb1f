"""Converters for embeds, bookmarks and link previews."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode, DiagnosticCode
from blocksync.blocks.richtext import sanitize_url

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

# host suffix -> (provider slug, embed type)
EMBED_PROVIDERS: dict[str, tuple[str, str]] = {
    "youtube.com": ("youtube", "video"),
    "youtu.be": ("youtube", "video"),
    "vimeo.com": ("vimeo", "video"),
    "twitter.com": ("twitter", "rich"),
    "x.com": ("twitter", "rich"),
    "spotify.com": ("spotify", "rich"),
    "soundcloud.com": ("soundcloud", "rich"),
    "codepen.io": ("codepen", "rich"),
    "figma.com": ("figma", "rich"),
    "slideshare.net": ("slideshare", "rich"),
    "loom.com": ("loom", "video"),
}

_WEB_SCHEMES = ("http", "https")


def detect_provider(url: str) -> tuple[str, str] | None:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return None
    for suffix, provider in EMBED_PROVIDERS.items():
        if host == suffix or host.endswith("." + suffix):
            return provider
    return None


def render_embed(url: str, caption: str = "") -> str:
    """Editor embed block for a sanitized http(s) URL."""
    provider = detect_provider(url)
    escaped = html.escape(url, quote=True)
    figcaption = f'<figcaption class="wp-element-caption">{caption}</figcaption>' if caption else ""
    if provider is None:
        return editor_block(
            "embed",
            f'<figure class="wp-block-embed"><div class="wp-block-embed__wrapper">\n{escaped}\n'
            f"</div>{figcaption}</figure>",
            {"url": url},
        )
    slug, embed_type = provider
    return editor_block(
        "embed",
        f'<figure class="wp-block-embed is-type-{embed_type} is-provider-{slug} '
        f'wp-block-embed-{slug}"><div class="wp-block-embed__wrapper">\n{escaped}\n'
        f"</div>{figcaption}</figure>",
        {"url": url, "type": embed_type, "providerNameSlug": slug},
    )


def _unsafe_notice(ctx: ConversionContext, url: str) -> str:
    ctx.add_diagnostic(
        DiagnosticCode.unsafe_link, f"Embed URL with disallowed scheme dropped: {url[:80]!r}"
    )
    return editor_block(
        "paragraph",
        '<p class="blocksync-embed-blocked"><em>[Embedded content unavailable]</em></p>',
    )


class EmbedConverter(BlockConverter):
    block_types = ("embed",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        url = str(block.payload.get("url") or "")
        safe = sanitize_url(url, _WEB_SCHEMES)
        if safe is None or not safe.startswith(_WEB_SCHEMES):
            return _unsafe_notice(ctx, url)
        caption = ctx.rich_text(block, "caption") if ctx.has_text(block, "caption") else ""
        return render_embed(safe, caption)


class BookmarkConverter(BlockConverter):
    block_types = ("bookmark", "link_preview")

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        url = str(block.payload.get("url") or "")
        safe = sanitize_url(url, _WEB_SCHEMES)
        if safe is None or not safe.startswith(_WEB_SCHEMES):
            return _unsafe_notice(ctx, url)
        if ctx.has_text(block, "caption"):
            label = ctx.rich_text(block, "caption")
        else:
            label = html.escape(url)
        return editor_block(
            "paragraph",
            f'<p class="blocksync-bookmark"><a href="{html.escape(safe, quote=True)}" '
            f'rel="noopener">{label}</a></p>',
            {"className": "blocksync-bookmark"},
        )

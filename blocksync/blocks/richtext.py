"""RichTextFormatter: renders rich text spans to inline markup."""

from __future__ import annotations

import html
import logging
import re
from typing import TYPE_CHECKING

from blocksync.blocks.models import DiagnosticCode, RichTextSpan, to_plain_text
from blocksync.blocks.placeholders import pending_link
from blocksync.ids import extract_reference

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_SCHEMES = ("http", "https", "mailto", "tel")
DEFAULT_SOURCE_HOSTS = ("notion.so", "www.notion.so")

# Innermost first; the loop wraps outward so bold always ends up outermost
_ANNOTATION_TAGS = (
    ("code", "code"),
    ("underline", "u"),
    ("strikethrough", "s"),
    ("italic", "em"),
    ("bold", "strong"),
)

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_COLOR_CHARS_RE = re.compile(r"[^a-z0-9_-]")


def sanitize_url(
    url: str | None, allowed_schemes: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_SCHEMES
) -> str | None:
    """Return a URL safe to emit as an href, or None.

    Control characters and whitespace are removed before the scheme is
    read, so ``java\\tscript:`` is still seen as ``javascript:``.
    Scheme-less relative URLs are allowed.
    """
    if not url:
        return None
    cleaned = _CONTROL_RE.sub("", url).strip()
    probe = _WHITESPACE_RE.sub("", cleaned)
    if not probe:
        return None

    m = _SCHEME_RE.match(probe)
    if m is None:
        # No scheme at all; a colon before the first slash would be read as one
        head = probe.split("/", 1)[0]
        if ":" in head:
            return None
        return cleaned.replace(" ", "%20")

    if m.group(1).lower() not in allowed_schemes:
        return None
    return cleaned.replace(" ", "%20")


def color_class(color: str) -> str | None:
    """Map a source color name to a CSS class, or None for the default color."""
    name = _COLOR_CHARS_RE.sub("", color.lower())
    if name.endswith("_background"):
        base = name[: -len("_background")]
        if not base or base == "default":
            return None
        return f"has-{base}-background-color"
    if not name or name == "default":
        return None
    return f"has-{name}-color"


class RichTextFormatter:
    """Renders rich text spans to inline markup.

    Output depends only on the spans and, for internal references, on the
    link registry state visible through the conversion context. The nesting
    order of annotations is fixed: color span, strong, em, s, u, code.
    """

    def __init__(
        self,
        allowed_schemes: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_SCHEMES,
        source_hosts: tuple[str, ...] | list[str] = DEFAULT_SOURCE_HOSTS,
        empty_placeholder: str = "&nbsp;",
    ) -> None:
        self.allowed_schemes = tuple(s.lower() for s in allowed_schemes)
        self.source_hosts = tuple(source_hosts)
        self.empty_placeholder = empty_placeholder

    def format(self, spans: list[RichTextSpan], ctx: ConversionContext | None = None) -> str:
        """Render spans. An empty result becomes the placeholder so the block stays visible."""
        rendered = "".join(self.format_span(span, ctx) for span in spans)
        return rendered or self.empty_placeholder

    def format_span(self, span: RichTextSpan, ctx: ConversionContext | None = None) -> str:
        if not span.content:
            return ""
        text = html.escape(span.content, quote=True)
        text = self._apply_annotations(text, span)
        if span.link:
            text = self._apply_link(text, span.link, ctx)
        return text

    def to_plain_text(self, spans: list[RichTextSpan]) -> str:
        return to_plain_text(spans)

    # -- helpers ---------------------------------------------------------------

    def _apply_annotations(self, text: str, span: RichTextSpan) -> str:
        annotations = span.annotations
        for flag, tag in _ANNOTATION_TAGS:
            if getattr(annotations, flag):
                text = f"<{tag}>{text}</{tag}>"
        css = color_class(annotations.color)
        if css:
            text = f'<span class="{css}">{text}</span>'
        return text

    def _apply_link(self, text: str, url: str, ctx: ConversionContext | None) -> str:
        source_id = extract_reference(url, self.source_hosts)
        if source_id is not None:
            if ctx is None:
                return pending_link(source_id, text)
            return ctx.reference(source_id, text)

        safe = sanitize_url(url, self.allowed_schemes)
        if safe is None:
            logger.debug("dropping link with disallowed scheme: %.80r", url)
            if ctx is not None:
                ctx.add_diagnostic(
                    DiagnosticCode.unsafe_link,
                    f"Link with disallowed scheme rendered as plain text: {url[:80]!r}",
                )
            return text
        return f'<a href="{html.escape(safe, quote=True)}">{text}</a>'

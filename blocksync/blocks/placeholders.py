"""Markup for cross-document references and copied media.

References that cannot be resolved while a document is converted are
written as inert placeholders: an HTML comment pair around the label. The
resolution pass rewrites them once the whole batch is committed. Anything
still unknown at that point becomes an inert label that later passes can
pick up again.
"""

from __future__ import annotations

import html
import re

UNRESOLVED_LINK_CLASS = "blocksync-unresolved-link"
MISSING_MEDIA_CLASS = "blocksync-missing-media"

XREF_RE = re.compile(r"<!-- xref:(pending|unresolved) (\S+) -->(.*?)<!-- /xref -->", re.DOTALL)
XREF_ANCHOR_RE = re.compile(r'<a href="([^"]*)" data-xref-id="(\S+?)">')
MEDIA_RE = re.compile(
    r"<!-- media:(pending|unresolved) (image|video|audio|file) (\S+) -->(.*?)<!-- /media -->",
    re.DOTALL,
)

_UNRESOLVED_LABEL_RE = re.compile(
    rf'^<span class="{UNRESOLVED_LINK_CLASS}">(.*)</span>$', re.DOTALL
)
_MISSING_MEDIA_LABEL_RE = re.compile(rf'^<span class="{MISSING_MEDIA_CLASS}">(.*)</span>$', re.DOTALL)


# -- links ---------------------------------------------------------------------


def resolved_link(source_id: str, locator: str, label: str) -> str:
    href = html.escape(locator, quote=True)
    return f'<a href="{href}" data-xref-id="{html.escape(source_id, quote=True)}">{label}</a>'


def pending_link(source_id: str, label: str) -> str:
    return f"<!-- xref:pending {source_id} -->{label}<!-- /xref -->"


def unresolved_link(source_id: str, label: str) -> str:
    return (
        f"<!-- xref:unresolved {source_id} -->"
        f'<span class="{UNRESOLVED_LINK_CLASS}">{label}</span>'
        "<!-- /xref -->"
    )


def link_label(state: str, inner: str) -> str:
    """Recover the original label from a placeholder body."""
    if state == "unresolved":
        m = _UNRESOLVED_LABEL_RE.match(inner)
        if m:
            return m.group(1)
    return inner


# -- media ---------------------------------------------------------------------


def media_element(kind: str, locator: str, label: str) -> str:
    """Render the element that displays a copied asset."""
    src = html.escape(locator, quote=True)
    if kind == "image":
        return f'<img src="{src}" alt="{html.escape(html.unescape(label), quote=True)}"/>'
    if kind == "video":
        return f'<video controls src="{src}"></video>'
    if kind == "audio":
        return f'<audio controls src="{src}"></audio>'
    return f'<a href="{src}">{label}</a>'


def pending_media(kind: str, identifier: str, label: str) -> str:
    return f"<!-- media:pending {kind} {identifier} -->{label}<!-- /media -->"


def unresolved_media(kind: str, identifier: str, label: str) -> str:
    return (
        f"<!-- media:unresolved {kind} {identifier} -->"
        f'<span class="{MISSING_MEDIA_CLASS}">{label}</span>'
        "<!-- /media -->"
    )


def media_label(state: str, inner: str) -> str:
    if state == "unresolved":
        m = _MISSING_MEDIA_LABEL_RE.match(inner)
        if m:
            return m.group(1)
    return inner

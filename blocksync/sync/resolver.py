"""Resolution pass: rewrites reference and media placeholders in committed markup."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from blocksync.blocks.models import Diagnostic, DiagnosticCode
from blocksync.blocks.placeholders import (
    MEDIA_RE,
    XREF_ANCHOR_RE,
    XREF_RE,
    link_label,
    media_element,
    media_label,
    resolved_link,
    unresolved_link,
    unresolved_media,
)
from blocksync.sync.models import ResolutionReport

if TYPE_CHECKING:
    from blocksync.registry.links import LinkRegistry
    from blocksync.registry.media import MediaRegistry
    from blocksync.sync.interfaces import ContentStore

logger = logging.getLogger(__name__)

_MARKERS = ("<!-- xref:", "<!-- media:", "data-xref-id=")


class LinkResolver:
    """Rewrites placeholders once the registries know about the whole batch.

    Pending and previously unresolved references are both rescanned, and
    anchors written by earlier passes get their href refreshed if the
    target moved. Each rewrite is a pure function of the markup and the
    registries, so running the pass again is harmless.
    """

    def __init__(self, links: LinkRegistry, media: MediaRegistry | None = None) -> None:
        self.links = links
        self.media = media

    def resolve_markup(
        self, markup: str, document_id: str | None = None
    ) -> tuple[str, ResolutionReport]:
        report = ResolutionReport()
        if not any(marker in markup for marker in _MARKERS):
            return markup, report

        def _rewrite_xref(m: re.Match) -> str:
            state, source_id, inner = m.group(1), m.group(2), m.group(3)
            label = link_label(state, inner)
            locator = self.links.resolve(source_id)
            if locator:
                report.links_resolved += 1
                return resolved_link(source_id, locator, label)
            report.links_unresolved += 1
            report.diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.unresolved_reference,
                    message=f"Reference to {source_id} is not in the synced set",
                    document_id=document_id,
                    source_id=source_id,
                )
            )
            return unresolved_link(source_id, label)

        def _refresh_anchor(m: re.Match) -> str:
            current, source_id = html.unescape(m.group(1)), m.group(2)
            locator = self.links.resolve(source_id)
            if not locator or locator == current:
                return m.group(0)
            report.links_refreshed += 1
            return f'<a href="{html.escape(locator, quote=True)}" data-xref-id="{source_id}">'

        def _rewrite_media(m: re.Match) -> str:
            state, kind, identifier, inner = m.group(1), m.group(2), m.group(3), m.group(4)
            label = media_label(state, inner)
            locator = self.media.locator(identifier) if self.media is not None else None
            if locator:
                report.media_resolved += 1
                return media_element(kind, locator, label)
            report.media_unresolved += 1
            report.diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.unresolved_media,
                    message=f"Asset {identifier} has not been copied",
                    document_id=document_id,
                    source_id=identifier,
                )
            )
            return unresolved_media(kind, identifier, label)

        # Existing anchors first so links resolved below are not counted twice
        markup = XREF_ANCHOR_RE.sub(_refresh_anchor, markup)
        markup = XREF_RE.sub(_rewrite_xref, markup)
        markup = MEDIA_RE.sub(_rewrite_media, markup)
        return markup, report

    def resolve_store(
        self, store: ContentStore, source_ids: Iterable[str] | None = None
    ) -> ResolutionReport:
        """Run the pass over committed documents and write back the ones that changed."""
        ids = list(source_ids) if source_ids is not None else store.list_ids()
        total = ResolutionReport()
        for source_id in ids:
            markup = store.get(source_id)
            if markup is None:
                logger.debug("nothing stored for %s; skipping", source_id)
                continue
            total.documents_checked += 1
            rewritten, report = self.resolve_markup(markup, document_id=source_id)
            total.merge(report)
            if rewritten != markup:
                store.replace(source_id, rewritten)
                total.documents_updated += 1

        logger.info(
            "resolution pass: %d/%d documents updated, %d links resolved, %d unresolved",
            total.documents_updated,
            total.documents_checked,
            total.links_resolved,
            total.links_unresolved,
        )
        return total

"""Per-document conversion state."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Literal

from blocksync.blocks.models import (
    AssetRequest,
    BlockNode,
    Diagnostic,
    DiagnosticCode,
    parse_rich_text,
)
from blocksync.blocks.placeholders import pending_link, resolved_link
from blocksync.blocks.richtext import RichTextFormatter
from blocksync.config.models import ConversionConfig, MediaConfig
from blocksync.ids import is_source_id
from blocksync.registry.media import media_identifier, source_signature

if TYPE_CHECKING:
    from blocksync.registry.links import LinkRegistry
    from blocksync.registry.media import MediaRegistry

logger = logging.getLogger(__name__)


class ConversionContext:
    """Everything a converter may read or record while converting one document.

    A context is created for a single conversion call and never shared
    between documents. Registries are optional so conversion also works
    standalone; references then always become placeholders.
    """

    def __init__(
        self,
        document_id: str,
        conversion: ConversionConfig | None = None,
        media_policy: MediaConfig | None = None,
        links: LinkRegistry | None = None,
        media: MediaRegistry | None = None,
        formatter: RichTextFormatter | None = None,
    ) -> None:
        self.document_id = document_id
        self.conversion = conversion or ConversionConfig()
        self.media_policy = media_policy or MediaConfig()
        self.links = links
        self.media = media
        self.formatter = formatter or RichTextFormatter(
            allowed_schemes=self.conversion.allowed_schemes,
            source_hosts=self.conversion.source_hosts,
            empty_placeholder=self.conversion.empty_placeholder,
        )
        self.depth = 0
        self.diagnostics: list[Diagnostic] = []
        self.pending_refs: list[str] = []
        self.asset_requests: list[AssetRequest] = []
        self._current_block: str | None = None

    @property
    def max_depth(self) -> int:
        return self.conversion.max_depth

    @contextmanager
    def nested(self) -> Iterator[None]:
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1

    @contextmanager
    def block(self, block: BlockNode) -> Iterator[None]:
        """Attribute diagnostics recorded inside the body to *block*."""
        previous = self._current_block
        self._current_block = block.id
        try:
            yield
        finally:
            self._current_block = previous

    def add_diagnostic(
        self,
        code: DiagnosticCode,
        message: str,
        *,
        severity: Literal["info", "warning", "error"] = "warning",
        block_id: str | None = None,
        source_id: str | None = None,
    ) -> None:
        self.diagnostics.append(
            Diagnostic(
                code=code,
                message=message,
                severity=severity,
                document_id=self.document_id,
                block_id=block_id or self._current_block,
                source_id=source_id,
            )
        )

    # -- rich text -------------------------------------------------------------

    def format_items(self, items: object) -> str:
        """Parse and render a raw rich-text array, recording skipped items."""
        spans, malformed = parse_rich_text(items)
        if malformed:
            self.add_diagnostic(
                DiagnosticCode.malformed_span,
                f"Skipped {malformed} malformed rich text item(s)",
                severity="info",
            )
        return self.formatter.format(spans, self)

    def rich_text(self, block: BlockNode, key: str = "rich_text") -> str:
        return self.format_items(block.payload.get(key))

    def has_text(self, block: BlockNode, key: str = "rich_text") -> bool:
        return bool(block.plain_text(key).strip())

    # -- references ------------------------------------------------------------

    def reference(self, source_id: str, label: str) -> str:
        """Render a reference to another document, or a placeholder if it is unknown yet.

        Targets that are not well-formed source ids can never resolve; the
        label is kept as plain text.
        """
        if not is_source_id(source_id):
            self.add_diagnostic(
                DiagnosticCode.unresolved_reference,
                f"Reference target is not a valid source id: {source_id[:80]!r}",
            )
            return label
        locator = self.links.resolve(source_id) if self.links is not None else None
        if locator:
            return resolved_link(source_id, locator, label)
        if source_id not in self.pending_refs:
            self.pending_refs.append(source_id)
        return pending_link(source_id, label)

    def reference_title(self, source_id: str) -> str | None:
        if self.links is None:
            return None
        entry = self.links.get(source_id)
        return entry.title if entry and entry.title else None

    # -- media -----------------------------------------------------------------

    def asset_locator(self, block_id: str, url: str) -> tuple[str, str | None]:
        """Look up the copied asset for a block.

        Returns ``(identifier, locator)``. When the asset has not been copied,
        or the source changed since it was, the locator is None and a copy
        request is queued for the caller.
        """
        identifier = media_identifier(self.document_id, block_id)
        signature = source_signature(url)
        entry = self.media.get(identifier) if self.media is not None else None

        if entry is not None and entry.source_signature == signature and entry.target_locator:
            return identifier, entry.target_locator

        reason: Literal["new", "refresh"] = "refresh" if entry is not None else "new"
        if not any(r.identifier == identifier for r in self.asset_requests):
            self.asset_requests.append(
                AssetRequest(url=url, identifier=identifier, source_signature=signature, reason=reason)
            )
        logger.debug("asset %s needs copy (%s)", identifier, reason)
        return identifier, None

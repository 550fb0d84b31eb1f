"""DocumentConverter: converts a whole document's block tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from blocksync.blocks.context import ConversionContext
from blocksync.blocks.models import BlockNode, ConversionResult, SourceDocument
from blocksync.blocks.registry import ConverterRegistry, default_registry
from blocksync.config.models import ConversionConfig, MediaConfig
from blocksync.ids import normalize_source_id

if TYPE_CHECKING:
    from blocksync.registry.links import LinkRegistry
    from blocksync.registry.media import MediaRegistry

logger = logging.getLogger(__name__)


class DocumentConverter:
    """Converts block trees to markup with a fresh context per call.

    Output is a function of the blocks and the registry state at call time,
    so the same tree converted twice against the same registries yields the
    same markup.
    """

    def __init__(
        self,
        registry: ConverterRegistry | None = None,
        conversion: ConversionConfig | None = None,
        media_policy: MediaConfig | None = None,
    ) -> None:
        self.registry = registry or default_registry()
        self.conversion = conversion or ConversionConfig()
        self.media_policy = media_policy or MediaConfig()

    def convert(
        self,
        document_id: str,
        blocks: list[BlockNode],
        links: LinkRegistry | None = None,
        media: MediaRegistry | None = None,
    ) -> ConversionResult:
        ctx = ConversionContext(
            normalize_source_id(document_id),
            conversion=self.conversion,
            media_policy=self.media_policy,
            links=links,
            media=media,
        )
        markup = self.registry.convert_children(blocks, ctx)
        logger.debug(
            "converted %s: %d bytes, %d diagnostics, %d pending refs",
            ctx.document_id,
            len(markup),
            len(ctx.diagnostics),
            len(ctx.pending_refs),
        )
        return ConversionResult(
            document_id=ctx.document_id,
            markup=markup,
            diagnostics=ctx.diagnostics,
            pending_refs=ctx.pending_refs,
            asset_requests=ctx.asset_requests,
        )

    def convert_document(
        self,
        document: SourceDocument,
        links: LinkRegistry | None = None,
        media: MediaRegistry | None = None,
    ) -> ConversionResult:
        return self.convert(document.source_id, document.blocks, links=links, media=media)

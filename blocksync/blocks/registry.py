"""ConverterRegistry: type-tag dispatch with an always-present fallback."""

from __future__ import annotations

import html
import logging

from blocksync.blocks.base import BlockConverter
from blocksync.blocks.context import ConversionContext
from blocksync.blocks.converters import (
    BookmarkConverter,
    CalloutConverter,
    ChildPageConverter,
    CodeConverter,
    ColumnConverter,
    ColumnListConverter,
    DividerConverter,
    EmbedConverter,
    EquationConverter,
    FallbackConverter,
    HeadingConverter,
    LinkToPageConverter,
    ListConverter,
    ListRun,
    MediaConverter,
    ParagraphConverter,
    QuoteConverter,
    TableConverter,
    ToggleConverter,
    group_siblings,
)
from blocksync.blocks.models import BlockNode, DiagnosticCode

logger = logging.getLogger(__name__)

TRUNCATED_MARKUP = "<!-- blocksync:truncated nesting limit reached -->\n"


class ConverterRegistry:
    """Maps block type tags to converters.

    Registration is additive: the first converter registered for a tag
    keeps it unless a later one is registered with ``override=True``.
    ``dispatch`` never raises; unknown types and failing converters both
    degrade through the fallback converter with a diagnostic.
    """

    def __init__(self, fallback: BlockConverter | None = None) -> None:
        self._converters: dict[str, BlockConverter] = {}
        self.fallback = fallback or FallbackConverter()

    def register(self, converter: BlockConverter, *, override: bool = False) -> None:
        for block_type in converter.block_types:
            existing = self._converters.get(block_type)
            if existing is not None and not override:
                logger.debug(
                    "%s already handled by %s; ignoring %s", block_type, existing.name, converter.name
                )
                continue
            self._converters[block_type] = converter
        logger.debug("registered converter %s for %s", converter.name, converter.block_types)

    def unregister(self, block_type: str) -> BlockConverter | None:
        return self._converters.pop(block_type, None)

    def lookup(self, block_type: str) -> BlockConverter | None:
        return self._converters.get(block_type)

    def supports(self, block: BlockNode) -> bool:
        converter = self._converters.get(block.type)
        return converter is not None and converter.supports(block)

    def types(self) -> list[str]:
        return sorted(self._converters)

    # -- dispatch --------------------------------------------------------------

    def dispatch(self, block: BlockNode, ctx: ConversionContext) -> str:
        """Convert one block (and its subtree) to markup."""
        with ctx.block(block):
            converter = self._converters.get(block.type)
            if converter is None or not converter.supports(block):
                logger.debug("no converter for block type %r (%s)", block.type, block.id)
                ctx.add_diagnostic(
                    DiagnosticCode.unsupported_block,
                    f"Unsupported block type {block.type!r}",
                    severity="info",
                )
                return self._fallback(block, ctx)
            try:
                return converter.convert(block, ctx, self)
            except Exception as e:
                logger.warning(
                    "converter %s failed on block %s", converter.name, block.id, exc_info=True
                )
                ctx.add_diagnostic(
                    DiagnosticCode.conversion_failed,
                    f"{converter.name} failed: {e}",
                    severity="error",
                )
                return self._fallback(block, ctx)

    def convert_children(self, blocks: list[BlockNode], ctx: ConversionContext) -> str:
        """Convert a sibling sequence one level below the current depth.

        Adjacent list items are grouped into shared containers. Past the
        depth cap the subtree is replaced by a marker and a diagnostic.
        """
        if not blocks:
            return ""
        if ctx.depth >= ctx.max_depth:
            logger.warning(
                "nesting deeper than %d in %s; truncating subtree", ctx.max_depth, ctx.document_id
            )
            ctx.add_diagnostic(
                DiagnosticCode.depth_exceeded,
                f"Nesting exceeds {ctx.max_depth} levels; {len(blocks)} block(s) truncated",
                block_id=blocks[0].id,
            )
            return TRUNCATED_MARKUP

        parts: list[str] = []
        with ctx.nested():
            for item in group_siblings(blocks):
                if isinstance(item, ListRun):
                    parts.append(self._convert_run(item, ctx))
                else:
                    parts.append(self.dispatch(item, ctx))
        return "".join(parts)

    # -- helpers ---------------------------------------------------------------

    def _convert_run(self, run: ListRun, ctx: ConversionContext) -> str:
        converter = self._converters.get(run.items[0].type)
        if not isinstance(converter, ListConverter):
            return "".join(self.dispatch(item, ctx) for item in run.items)
        try:
            return converter.convert_run(run, ctx, self)
        except Exception as e:
            logger.warning("list conversion failed", exc_info=True)
            ctx.add_diagnostic(
                DiagnosticCode.conversion_failed,
                f"{converter.name} failed: {e}",
                severity="error",
                block_id=run.items[0].id,
            )
            return "".join(self._fallback(item, ctx) for item in run.items)

    def _fallback(self, block: BlockNode, ctx: ConversionContext) -> str:
        try:
            return self.fallback.convert(block, ctx, self)
        except Exception:
            logger.error("fallback converter failed on block %s", block.id, exc_info=True)
            return f"<!-- blocksync:unconvertible {html.escape(block.type)} -->\n"


def default_registry() -> ConverterRegistry:
    """Registry with every built-in converter."""
    registry = ConverterRegistry()
    for converter in (
        ParagraphConverter(),
        HeadingConverter(),
        QuoteConverter(),
        DividerConverter(),
        CodeConverter(),
        EquationConverter(),
        ListConverter(),
        TableConverter(),
        ToggleConverter(),
        CalloutConverter(),
        ColumnListConverter(),
        ColumnConverter(),
        ChildPageConverter(),
        LinkToPageConverter(),
        MediaConverter(),
        EmbedConverter(),
        BookmarkConverter(),
    ):
        registry.register(converter)
    return registry

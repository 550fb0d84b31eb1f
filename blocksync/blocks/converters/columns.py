"""Column layout converters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry


class ColumnListConverter(BlockConverter):
    block_types = ("column_list",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        inner = registry.convert_children(block.children, ctx)
        return editor_block("columns", f'<div class="wp-block-columns">{inner}</div>')


class ColumnConverter(BlockConverter):
    block_types = ("column",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        inner = registry.convert_children(block.children, ctx)
        return editor_block("column", f'<div class="wp-block-column">{inner}</div>')

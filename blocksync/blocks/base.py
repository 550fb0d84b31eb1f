"""Abstract block converter interface."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from blocksync.blocks.models import BlockNode

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry


class BlockConverter(ABC):
    """Converts one block type (or a family of them) to target markup.

    Converters must not raise for bad input; they degrade and record a
    diagnostic on the context. Children are converted through the registry
    passed in, so nested blocks get the same dispatch and depth tracking.
    """

    block_types: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.__class__.__name__.replace("Converter", "")

    def supports(self, block: BlockNode) -> bool:
        return block.type in self.block_types

    @abstractmethod
    def convert(
        self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry
    ) -> str:
        """Return markup for *block*, including its children."""
        ...


def editor_block(name: str, inner: str, attrs: dict[str, Any] | None = None) -> str:
    """Wrap *inner* in block-editor comment delimiters.

    Attribute JSON is escaped the way the editor serializes it, so values
    cannot terminate the surrounding comment.
    """
    opening = f"<!-- wp:{name} -->"
    if attrs:
        encoded = json.dumps(attrs, separators=(",", ":"), ensure_ascii=False)
        encoded = (
            encoded.replace("--", "\\u002d\\u002d")
            .replace("<", "\\u003c")
            .replace(">", "\\u003e")
            .replace("&", "\\u0026")
        )
        opening = f"<!-- wp:{name} {encoded} -->"
    return f"{opening}\n{inner}\n<!-- /wp:{name} -->\n\n"

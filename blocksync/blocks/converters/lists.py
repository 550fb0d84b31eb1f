"""List grouping and list item rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

ListKind = Literal["unordered", "ordered", "todo"]

LIST_KINDS: dict[str, ListKind] = {
    "bulleted_list_item": "unordered",
    "numbered_list_item": "ordered",
    "to_do": "todo",
}


class ListRun(BaseModel):
    """Consecutive sibling list items of one kind, rendered as one container."""

    kind: ListKind
    items: list[BlockNode] = []


def group_siblings(blocks: list[BlockNode]) -> list[BlockNode | ListRun]:
    """Single pass over siblings, buffering adjacent list items of the same kind.

    Any other block, or a change of list kind, closes the current run.
    Runs separated by another block are never merged.
    """
    grouped: list[BlockNode | ListRun] = []
    current: ListRun | None = None
    for block in blocks:
        kind = LIST_KINDS.get(block.type)
        if kind is None:
            current = None
            grouped.append(block)
            continue
        if current is None or current.kind != kind:
            current = ListRun(kind=kind)
            grouped.append(current)
        current.items.append(block)
    return grouped


class ListConverter(BlockConverter):
    block_types = tuple(LIST_KINDS)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        return self.convert_run(ListRun(kind=LIST_KINDS[block.type], items=[block]), ctx, registry)

    def convert_run(self, run: ListRun, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        items = "".join(self._render_item(item, run.kind, ctx, registry) for item in run.items)
        if run.kind == "ordered":
            return editor_block("list", f"<ol>{items}</ol>", {"ordered": True})
        if run.kind == "todo":
            return editor_block(
                "list",
                f'<ul class="blocksync-todo-list">{items}</ul>',
                {"className": "blocksync-todo-list"},
            )
        return editor_block("list", f"<ul>{items}</ul>")

    def _render_item(
        self, block: BlockNode, kind: ListKind, ctx: ConversionContext, registry: ConverterRegistry
    ) -> str:
        with ctx.block(block):
            text = ctx.rich_text(block)
            if kind == "todo":
                checked = " checked" if block.payload.get("checked") else ""
                text = f'<input type="checkbox" disabled{checked}/> {text}'
            nested = registry.convert_children(block.children, ctx)
        return f"<li>{text}{nested}</li>"

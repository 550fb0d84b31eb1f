"""Table converter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode, DiagnosticCode

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

logger = logging.getLogger(__name__)

EMPTY_TABLE_MARKUP = editor_block(
    "paragraph",
    '<p class="blocksync-empty-table"><em>[Empty table]</em></p>',
    {"className": "blocksync-empty-table"},
)


class TableConverter(BlockConverter):
    """Renders ``table`` blocks from their ``table_row`` children.

    With ``has_column_header`` the first row goes to a header section.
    With ``has_row_header`` the first cell of every body row is a header
    cell. Rows without cells are dropped; other child types are ignored.
    """

    block_types = ("table",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        rows: list[list[str]] = []
        for child in block.children:
            if child.type != "table_row":
                logger.debug("ignoring %s child %s inside table %s", child.type, child.id, block.id)
                continue
            cells = child.payload.get("cells")
            if not isinstance(cells, list) or not cells:
                ctx.add_diagnostic(
                    DiagnosticCode.dropped_row,
                    "Dropped table row with no cells",
                    severity="info",
                    block_id=child.id or block.id,
                )
                continue
            rows.append([ctx.format_items(cell) for cell in cells])

        if not rows:
            ctx.add_diagnostic(DiagnosticCode.empty_table, "Table has no rows", severity="info")
            return EMPTY_TABLE_MARKUP

        column_header = bool(block.payload.get("has_column_header"))
        row_header = bool(block.payload.get("has_row_header"))

        sections = []
        body = rows
        if column_header:
            head_cells = "".join(f'<th scope="col">{c}</th>' for c in rows[0])
            sections.append(f"<thead><tr>{head_cells}</tr></thead>")
            body = rows[1:]
        if body:
            body_rows = "".join(self._render_row(cells, row_header) for cells in body)
            sections.append(f"<tbody>{body_rows}</tbody>")

        attrs = {}
        if column_header:
            attrs["hasColumnHeader"] = True
        if row_header:
            attrs["hasRowHeader"] = True
        return editor_block(
            "table",
            f'<figure class="wp-block-table"><table>{"".join(sections)}</table></figure>',
            attrs or None,
        )

    @staticmethod
    def _render_row(cells: list[str], row_header: bool) -> str:
        parts = []
        for i, cell in enumerate(cells):
            if row_header and i == 0:
                parts.append(f'<th scope="row">{cell}</th>')
            else:
                parts.append(f"<td>{cell}</td>")
        return f"<tr>{''.join(parts)}</tr>"

"""Converters for text blocks: paragraphs, headings, quotes, code, dividers, equations."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.models import BlockNode

if TYPE_CHECKING:
    from blocksync.blocks.context import ConversionContext
    from blocksync.blocks.registry import ConverterRegistry

# Source language names that differ from highlighter class names
CODE_LANGUAGES: dict[str, str] = {
    "plain text": "plaintext",
    "c++": "cpp",
    "c#": "csharp",
    "f#": "fsharp",
    "objective-c": "objectivec",
    "shell": "bash",
    "javascript": "javascript",
    "typescript": "typescript",
    "python": "python",
    "markdown": "markdown",
    "html": "html",
    "css": "css",
    "sql": "sql",
    "json": "json",
    "yaml": "yaml",
    "docker": "dockerfile",
    "makefile": "makefile",
    "java/c/c++/c#": "clike",
}


class ParagraphConverter(BlockConverter):
    block_types = ("paragraph",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        markup = editor_block("paragraph", f"<p>{ctx.rich_text(block)}</p>")
        if block.children:
            # Indented children keep their nesting in a group
            inner = registry.convert_children(block.children, ctx)
            markup += editor_block(
                "group",
                f'<div class="wp-block-group blocksync-indent">{inner}</div>',
                {"className": "blocksync-indent"},
            )
        return markup


class HeadingConverter(BlockConverter):
    block_types = ("heading_1", "heading_2", "heading_3")

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        level = int(block.type[-1])
        text = ctx.rich_text(block)
        attrs = {"level": level} if level != 2 else None
        markup = editor_block(
            "heading", f'<h{level} class="wp-block-heading">{text}</h{level}>', attrs
        )
        # Toggleable headings carry their section as children
        if block.children:
            markup += registry.convert_children(block.children, ctx)
        return markup


class QuoteConverter(BlockConverter):
    block_types = ("quote",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        inner = f"<p>{ctx.rich_text(block)}</p>"
        inner += registry.convert_children(block.children, ctx)
        return editor_block("quote", f'<blockquote class="wp-block-quote">{inner}</blockquote>')


class DividerConverter(BlockConverter):
    block_types = ("divider",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        return editor_block(
            "separator", '<hr class="wp-block-separator has-alpha-channel-opacity"/>'
        )


class CodeConverter(BlockConverter):
    block_types = ("code",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        # Code keeps its literal text; annotations inside code are ignored
        source = html.escape(block.plain_text(), quote=False)
        language = self.language_slug(str(block.payload.get("language") or "plain text"))
        markup = editor_block(
            "code",
            f'<pre class="wp-block-code"><code class="language-{language}">{source}</code></pre>',
        )
        if ctx.has_text(block, "caption"):
            markup += editor_block(
                "paragraph", f'<p class="blocksync-code-caption">{ctx.rich_text(block, "caption")}</p>'
            )
        return markup

    @staticmethod
    def language_slug(language: str) -> str:
        lowered = language.strip().lower()
        slug = CODE_LANGUAGES.get(lowered, lowered)
        return "".join(c for c in slug if c.isalnum() or c in "-_") or "plaintext"


class EquationConverter(BlockConverter):
    block_types = ("equation",)

    def convert(self, block: BlockNode, ctx: ConversionContext, registry: ConverterRegistry) -> str:
        expression = html.escape(str(block.payload.get("expression") or ""), quote=False)
        return editor_block("paragraph", f'<p class="blocksync-equation">\\[{expression}\\]</p>')

"""Tests for ConverterRegistry dispatch, fallback and depth handling."""

import pytest

from blocksync.blocks.base import BlockConverter, editor_block
from blocksync.blocks.context import ConversionContext
from blocksync.blocks.document import DocumentConverter
from blocksync.blocks.models import DiagnosticCode, SourceDocument
from blocksync.blocks.registry import TRUNCATED_MARKUP, ConverterRegistry, default_registry
from blocksync.config.models import ConversionConfig

from factories import DOC_A, block, text


class _Static(BlockConverter):
    def __init__(self, block_types, output):
        self.block_types = block_types
        self.output = output

    def convert(self, block, ctx, registry):
        return self.output


class _Boom(BlockConverter):
    block_types = ("paragraph",)

    def convert(self, block, ctx, registry):
        raise RuntimeError("kaboom")


def _toggle_chain(depth):
    node = block("paragraph", text("leaf"), block_id="leaf")
    for i in range(depth):
        node = block("toggle", text(f"level {i}"), children=[node], block_id=f"t{i}")
    return node


# ── editor_block ──────────────────────────────────────────────────


class TestEditorBlock:
    def test_without_attributes(self):
        assert editor_block("paragraph", "<p>x</p>") == (
            "<!-- wp:paragraph -->\n<p>x</p>\n<!-- /wp:paragraph -->\n\n"
        )

    def test_attributes_cannot_close_comment(self):
        out = editor_block("embed", "", {"url": "https://a.test/--><script>"})
        opening = out.split("\n", 1)[0]
        assert opening.count("-->") == 1
        assert "<script>" not in opening


# ── Registration and dispatch ─────────────────────────────────────


class TestDispatch:
    def test_exact_type_match(self):
        registry = ConverterRegistry()
        registry.register(_Static(("callout",), "CALLOUT"))
        ctx = ConversionContext("doc")
        assert registry.dispatch(block("callout"), ctx) == "CALLOUT"
        assert ctx.diagnostics == []

    def test_first_registration_wins(self):
        registry = ConverterRegistry()
        registry.register(_Static(("x",), "first"))
        registry.register(_Static(("x",), "second"))
        assert registry.dispatch(block("x"), ConversionContext("doc")) == "first"

    def test_override_replaces(self):
        registry = ConverterRegistry()
        registry.register(_Static(("x",), "first"))
        registry.register(_Static(("x",), "second"), override=True)
        assert registry.dispatch(block("x"), ConversionContext("doc")) == "second"

    def test_new_types_extend_default_registry(self):
        registry = default_registry()
        registry.register(_Static(("synced_block",), "SYNCED"))
        assert "synced_block" in registry.types()
        assert "paragraph" in registry.types()

    def test_supports(self):
        registry = default_registry()
        assert registry.supports(block("table"))
        assert not registry.supports(block("ai_block"))


class TestFallback:
    def test_unknown_type_degrades_to_paragraph(self):
        registry = default_registry()
        ctx = ConversionContext("doc")
        out = registry.dispatch(block("ai_block", text("generated <text>"), block_id="b1"), ctx)
        assert '<p class="blocksync-unsupported-block">generated &lt;text&gt;</p>' in out
        assert len(ctx.diagnostics) == 1
        diag = ctx.diagnostics[0]
        assert diag.code == DiagnosticCode.unsupported_block
        assert diag.block_id == "b1"
        assert diag.document_id == "doc"

    def test_unknown_type_uses_title_then_url(self):
        registry = default_registry()
        ctx = ConversionContext("doc")
        assert "Board" in registry.dispatch(block("board", title="Board"), ctx)
        out = registry.dispatch(block("widget", url="https://a.test/w"), ctx)
        assert 'Link: <a href="https://a.test/w">' in out

    def test_unknown_type_without_text_leaves_marker(self):
        registry = default_registry()
        out = registry.dispatch(block("breadcrumb"), ConversionContext("doc"))
        assert out == "<!-- blocksync:unsupported breadcrumb -->\n"

    def test_unknown_type_keeps_children(self):
        registry = default_registry()
        parent = block("mystery", children=[block("paragraph", text("kept"))])
        out = registry.dispatch(parent, ConversionContext("doc"))
        assert "<p>kept</p>" in out

    def test_failing_converter_never_raises(self):
        registry = default_registry()
        registry.register(_Boom(), override=True)
        ctx = ConversionContext("doc")
        out = registry.dispatch(block("paragraph", text("survives")), ctx)
        assert "survives" in out
        assert [d.code for d in ctx.diagnostics] == [DiagnosticCode.conversion_failed]
        assert "kaboom" in ctx.diagnostics[0].message


# ── Depth cap ─────────────────────────────────────────────────────


class TestDepthCap:
    def test_default_cap_is_100(self):
        assert ConversionConfig().max_depth == 100

    def test_truncates_at_configured_depth(self):
        converter = DocumentConverter(conversion=ConversionConfig(max_depth=3))
        result = converter.convert("doc", [_toggle_chain(5)])
        assert result.markup.count("<details") == 3
        assert TRUNCATED_MARKUP in result.markup
        assert "leaf" not in result.markup
        assert [d.code for d in result.diagnostics] == [DiagnosticCode.depth_exceeded]

    def test_deep_tree_does_not_overflow(self):
        result = DocumentConverter().convert("doc", [_toggle_chain(150)])
        assert result.markup.count("<details") == 100
        assert any(d.code == DiagnosticCode.depth_exceeded for d in result.diagnostics)

    def test_within_cap_is_complete(self):
        result = DocumentConverter().convert("doc", [_toggle_chain(10)])
        assert "leaf" in result.markup
        assert result.diagnostics == []


# ── DocumentConverter ─────────────────────────────────────────────


class TestDocumentConverter:
    def test_idempotent(self, sample_export, links, media):
        doc = SourceDocument.from_api(sample_export)
        converter = DocumentConverter()
        first = converter.convert_document(doc, links=links, media=media)
        second = converter.convert_document(doc, links=links, media=media)
        assert first.markup == second.markup
        assert first.diagnostics == second.diagnostics

    def test_bad_mention_only_affects_its_span(self):
        node = block("paragraph", text("keep me"), {"type": "mention", "mention": "oops"})
        result = DocumentConverter().convert("doc", [node])
        assert "<p>keep me</p>" in result.markup
        assert "unconvertible" not in result.markup
        assert result.diagnostics == []

    def test_bad_table_cell_keeps_table(self):
        row = block(
            "table_row",
            block_id="r1",
            cells=[[text("ok")], [{"type": "equation", "equation": "E=mc2", "plain_text": "E=mc2"}]],
        )
        result = DocumentConverter().convert("doc", [block("table", children=[row], block_id="t1")])
        assert "<td>ok</td><td>E=mc2</td>" in result.markup

    def test_collects_pending_refs_once(self):
        blocks = [
            block("paragraph", text("one", link=f"/{'b' * 32}")),
            block("paragraph", text("two", link=f"/{'b' * 32}")),
        ]
        result = DocumentConverter().convert(DOC_A, blocks)
        assert result.pending_refs == ["b" * 32]
        assert result.markup.count("xref:pending") == 2

    def test_document_id_is_normalized(self):
        result = DocumentConverter().convert("AAAAAAAA-aaaa-aaaa-aaaa-aaaaaaaaaaaa", [])
        assert result.document_id == DOC_A
        assert result.markup == ""

    @pytest.mark.parametrize(
        "block_type,needle",
        [
            ("heading_1", "<h1"),
            ("heading_2", "<h2"),
            ("quote", "<blockquote"),
            ("divider", "<hr"),
            ("equation", "blocksync-equation"),
        ],
    )
    def test_builtin_text_blocks(self, block_type, needle):
        b = block(block_type, text("x"), expression="x")
        result = DocumentConverter().convert("doc", [b])
        assert needle in result.markup
        assert result.diagnostics == []

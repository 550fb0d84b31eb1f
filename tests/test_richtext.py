"""Tests for RichTextFormatter and URL sanitization."""

import pytest

from blocksync.blocks.context import ConversionContext
from blocksync.blocks.models import Annotations, DiagnosticCode, RichTextSpan
from blocksync.blocks.richtext import RichTextFormatter, color_class, sanitize_url

from factories import DOC_B, text


@pytest.fixture
def formatter():
    return RichTextFormatter()


def _span(content, link=None, **flags):
    return RichTextSpan(content=content, annotations=Annotations(**flags), link=link)


# ── Escaping and annotations ──────────────────────────────────────


class TestAnnotations:
    def test_plain_text_is_escaped(self, formatter):
        assert formatter.format([_span('<b>"x" & y</b>')]) == (
            "&lt;b&gt;&quot;x&quot; &amp; y&lt;/b&gt;"
        )

    def test_escaping_happens_before_wrapping(self, formatter):
        assert formatter.format([_span("a<b", bold=True)]) == "<strong>a&lt;b</strong>"

    def test_fixed_nesting_order(self, formatter):
        span = _span("x", bold=True, italic=True, strikethrough=True, underline=True, code=True)
        assert formatter.format([span]) == (
            "<strong><em><s><u><code>x</code></u></s></em></strong>"
        )

    def test_declaration_order_does_not_matter(self, formatter):
        first = RichTextSpan.from_api(text("hi", bold=True, italic=True))
        second = RichTextSpan.from_api(text("hi", italic=True, bold=True))
        assert formatter.format([first]) == formatter.format([second])
        assert formatter.format([first]) == "<strong><em>hi</em></strong>"

    def test_color_wraps_outside_styles(self, formatter):
        assert formatter.format([_span("x", bold=True, color="red")]) == (
            '<span class="has-red-color"><strong>x</strong></span>'
        )

    def test_background_color(self, formatter):
        assert formatter.format([_span("x", color="yellow_background")]) == (
            '<span class="has-yellow-background-color">x</span>'
        )

    def test_default_color_adds_nothing(self, formatter):
        assert formatter.format([_span("x", color="default")]) == "x"

    def test_spans_are_concatenated(self, formatter):
        spans = [_span("a "), _span("b", italic=True), _span(" c")]
        assert formatter.format(spans) == "a <em>b</em> c"

    def test_identical_input_gives_identical_output(self, formatter):
        spans = [_span("a", bold=True, link="https://example.com"), _span("b", code=True)]
        assert formatter.format(spans) == formatter.format(list(spans))


class TestColorClass:
    def test_strips_unsafe_characters(self):
        assert color_class('red" onclick="x') == "has-redonclickx-color"

    def test_default_background_is_none(self):
        assert color_class("default_background") is None


# ── Empty input ────────────────────────────────────────────────────


class TestEmptyInput:
    def test_empty_sequence_emits_placeholder(self, formatter):
        assert formatter.format([]) == "&nbsp;"

    def test_all_empty_spans_emit_placeholder(self, formatter):
        assert formatter.format([_span(""), _span("", bold=True)]) == "&nbsp;"

    def test_custom_placeholder(self):
        assert RichTextFormatter(empty_placeholder="<br/>").format([]) == "<br/>"


# ── Links ──────────────────────────────────────────────────────────


class TestLinks:
    def test_safe_link_wraps_anchor(self, formatter):
        out = formatter.format([_span("x", link="https://example.com/?a=1&b=2")])
        assert out == '<a href="https://example.com/?a=1&amp;b=2">x</a>'

    def test_anchor_wraps_styled_text(self, formatter):
        out = formatter.format([_span("x", link="https://example.com", bold=True)])
        assert out == '<a href="https://example.com"><strong>x</strong></a>'

    @pytest.mark.parametrize(
        "url",
        [
            "javascript:alert(1)",
            "  JaVaScRiPt:alert(1)",
            "java\tscript:alert(1)",
            "java\nscript:alert(1)",
            "data:text/html;base64,PHNjcmlwdD4=",
            "vbscript:msgbox(1)",
        ],
    )
    def test_dangerous_link_degrades_to_label(self, formatter, url):
        out = formatter.format([_span("click", link=url)])
        assert out == "click"
        assert "href" not in out

    def test_dangerous_link_is_reported(self):
        ctx = ConversionContext("doc")
        out = ctx.formatter.format([_span("click", link="javascript:alert(1)")], ctx)
        assert out == "click"
        assert [d.code for d in ctx.diagnostics] == [DiagnosticCode.unsafe_link]


class TestSanitizeUrl:
    def test_allows_http_https_mailto_tel(self):
        for url in ("http://a.test", "https://a.test", "mailto:x@a.test", "tel:+123"):
            assert sanitize_url(url) == url

    def test_allows_relative(self):
        assert sanitize_url("/docs/page") == "/docs/page"
        assert sanitize_url("#section") == "#section"

    def test_rejects_empty(self):
        assert sanitize_url("") is None
        assert sanitize_url(" \t ") is None
        assert sanitize_url(None) is None

    def test_encodes_spaces(self):
        assert sanitize_url("https://a.test/my page") == "https://a.test/my%20page"

    def test_custom_scheme_list(self):
        assert sanitize_url("mailto:x@a.test", ("http", "https")) is None


# ── Internal references ────────────────────────────────────────────


class TestInternalReferences:
    def test_relative_reference_without_context_is_placeholder(self, formatter):
        out = formatter.format([_span("guide", link="/" + DOC_B)])
        assert out == f"<!-- xref:pending {DOC_B} -->guide<!-- /xref -->"

    def test_source_url_reference_is_detected(self, formatter):
        out = formatter.format([_span("guide", link=f"https://www.notion.so/Guide-{DOC_B}")])
        assert f"xref:pending {DOC_B}" in out

    def test_unresolved_reference_is_recorded(self, links):
        ctx = ConversionContext("doc", links=links)
        ctx.formatter.format([_span("guide", link="/" + DOC_B)], ctx)
        assert ctx.pending_refs == [DOC_B]

    def test_known_reference_resolves_immediately(self, links):
        links.register(DOC_B, "https://site.test/guide/", "Guide")
        ctx = ConversionContext("doc", links=links)
        out = ctx.formatter.format([_span("guide", link="/" + DOC_B, italic=True)], ctx)
        assert out == f'<a href="https://site.test/guide/" data-xref-id="{DOC_B}"><em>guide</em></a>'
        assert ctx.pending_refs == []

    def test_stub_entry_stays_pending(self, links):
        links.register_stub(DOC_B, "Guide")
        ctx = ConversionContext("doc", links=links)
        out = ctx.formatter.format([_span("guide", link="/" + DOC_B)], ctx)
        assert "xref:pending" in out

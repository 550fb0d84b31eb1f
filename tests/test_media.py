"""Tests for media classification, MediaRegistry and MediaConverter."""

import pytest

from blocksync.blocks.context import ConversionContext
from blocksync.blocks.models import DiagnosticCode
from blocksync.blocks.registry import default_registry
from blocksync.config.models import MediaConfig, MediaRule
from blocksync.registry.media import (
    MediaAction,
    classify,
    media_identifier,
    source_signature,
    strip_volatile,
)

from factories import DOC_A, block, text

HOSTED = "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/abc/photo.png"


def _hosted_image(url=HOSTED, block_id="img1", caption=None):
    payload = {"type": "file", "file": {"url": url, "expiry_time": "2026-01-01T00:00:00Z"}}
    if caption:
        payload["caption"] = [text(caption)]
    return block("image", block_id=block_id, **payload)


def _external(block_type, url, block_id="ext1", **extra):
    return block(block_type, block_id=block_id, type="external", external={"url": url}, **extra)


# ── Classification and identity ───────────────────────────────────


class TestClassify:
    def test_expiring_source_url_must_be_copied(self):
        assert classify(HOSTED + "?X-Amz-Signature=abc") is MediaAction.MUST_COPY

    def test_legacy_source_bucket_must_be_copied(self):
        url = "https://s3.us-west-2.amazonaws.com/secure.notion-static.com/x/y.png"
        assert classify(url) is MediaAction.MUST_COPY

    def test_known_cdn_links_through(self):
        assert classify("https://images.unsplash.com/photo-1?w=800") is MediaAction.LINK_THROUGH

    def test_unknown_host_uses_default(self):
        assert classify("https://cdn.example.com/a.png") is MediaAction.LINK_THROUGH
        policy = MediaConfig(default_action="must_copy")
        assert classify("https://cdn.example.com/a.png", policy) is MediaAction.MUST_COPY

    def test_first_matching_rule_wins(self):
        policy = MediaConfig(
            policies=[
                MediaRule(pattern="cdn.example.com", action="must_copy"),
                MediaRule(pattern="example.com", action="link_through"),
            ]
        )
        assert classify("https://cdn.example.com/a.png", policy) is MediaAction.MUST_COPY

    def test_expiring_beats_rules(self):
        policy = MediaConfig(policies=[MediaRule(pattern="amazonaws.com", action="link_through")])
        assert classify(HOSTED, policy) is MediaAction.MUST_COPY


class TestIdentity:
    def test_signature_ignores_rotating_tokens(self):
        assert source_signature(HOSTED + "?X-Amz-Signature=1") == source_signature(
            HOSTED + "?X-Amz-Signature=2#frag"
        )

    def test_signature_changes_with_path(self):
        assert source_signature(HOSTED) != source_signature(HOSTED.replace("photo", "other"))

    def test_strip_volatile(self):
        assert strip_volatile("https://a.test/x.png?t=1#y") == "https://a.test/x.png"

    def test_identifier_normalizes_ids(self):
        assert media_identifier("AAAAAAAA-aaaa-aaaa-aaaa-aaaaaaaaaaaa", "img1") == f"{DOC_A}:img1"

    def test_identifier_replaces_markup_characters(self):
        identifier = media_identifier("doc", "x --><b>\"")
        assert identifier == "doc:x_--__b__"
        assert "-->" not in identifier


# ── MediaRegistry ─────────────────────────────────────────────────


class TestMediaRegistry:
    def test_register_and_find(self, media):
        entry = media.register("d:b", "asset-1", "sig1", "https://cdn.test/a.png")
        assert entry.target_asset_id == "asset-1"
        assert media.find("d:b") == "asset-1"
        assert media.locator("d:b") == "https://cdn.test/a.png"
        assert media.find("missing") is None

    def test_repeated_registration_keeps_one_entry(self, media):
        for _ in range(5):
            media.register("d:b", "asset-1", "sig1", "https://cdn.test/a.png")
        assert media.count() == 1

    def test_refresh_updates_in_place(self, media):
        first = media.register("d:b", "asset-1", "sig1", "https://cdn.test/a.png")
        second = media.register("d:b", "asset-2", "sig2", "https://cdn.test/b.png")
        assert media.count() == 1
        assert second.source_signature == "sig2"
        assert second.target_asset_id == "asset-2"
        assert second.registered_at == first.registered_at

    def test_register_without_locator_keeps_previous(self, media):
        media.register("d:b", "asset-1", "sig1", "https://cdn.test/a.png")
        entry = media.register("d:b", "asset-1", "sig2")
        assert entry.target_locator == "https://cdn.test/a.png"

    def test_needs_refresh(self, media):
        assert media.needs_refresh("d:b", HOSTED)
        media.register("d:b", "asset-1", source_signature(HOSTED))
        assert not media.needs_refresh("d:b", HOSTED + "?token=new")
        assert media.needs_refresh("d:b", HOSTED.replace("photo", "other"))

    def test_find_by_asset_and_stats(self, media):
        media.register("d:b1", "shared", "s1", "https://cdn.test/a.png")
        media.register("d:b2", "shared", "s2")
        media.register("d:b3", "own", "s3", "https://cdn.test/c.png")
        assert [e.identifier for e in media.find_by_asset("shared")] == ["d:b1", "d:b2"]
        stats = media.stats()
        assert stats.total == 3
        assert stats.with_locator == 2
        assert stats.distinct_assets == 2

    def test_delete(self, media):
        media.register("d:b", "asset-1", "sig1")
        assert media.delete("d:b") is True
        assert media.delete("d:b") is False
        assert media.count() == 0


# ── MediaConverter ────────────────────────────────────────────────


def _dispatch(node, ctx):
    return default_registry().dispatch(node, ctx)


class TestMediaConverter:
    def test_uncopied_hosted_asset_becomes_placeholder(self, media):
        ctx = ConversionContext("doc", media=media)
        out = _dispatch(_hosted_image(caption="Team photo"), ctx)
        assert "<!-- media:pending image doc:img1 -->Team photo<!-- /media -->" in out
        assert HOSTED not in out
        assert len(ctx.asset_requests) == 1
        request = ctx.asset_requests[0]
        assert request.identifier == "doc:img1"
        assert request.reason == "new"
        assert request.source_signature == source_signature(HOSTED)

    def test_copied_asset_renders_target_locator(self, media):
        media.register("doc:img1", "asset-7", source_signature(HOSTED), "https://cdn.test/photo.png")
        ctx = ConversionContext("doc", media=media)
        out = _dispatch(_hosted_image(HOSTED + "?X-Amz-Signature=rotated"), ctx)
        assert '<img src="https://cdn.test/photo.png" alt=""/>' in out
        assert ctx.asset_requests == []

    def test_changed_source_requests_refresh(self, media):
        media.register("doc:img1", "asset-7", "stale", "https://cdn.test/photo.png")
        ctx = ConversionContext("doc", media=media)
        out = _dispatch(_hosted_image(), ctx)
        assert "media:pending" in out
        assert [r.reason for r in ctx.asset_requests] == ["refresh"]

    def test_same_block_requested_once(self, media):
        ctx = ConversionContext("doc", media=media)
        _dispatch(_hosted_image(), ctx)
        _dispatch(_hosted_image(HOSTED + "?again=1"), ctx)
        assert len(ctx.asset_requests) == 1

    def test_stable_external_url_links_through(self):
        ctx = ConversionContext("doc")
        node = _external("image", "https://images.unsplash.com/photo.jpg", caption=[text("A & B")])
        out = _dispatch(node, ctx)
        assert '<img src="https://images.unsplash.com/photo.jpg" alt="A &amp; B"/>' in out
        assert '<figcaption class="wp-element-caption">A &amp; B</figcaption>' in out
        assert ctx.asset_requests == []

    def test_unsafe_external_url_is_dropped(self):
        ctx = ConversionContext("doc")
        out = _dispatch(_external("image", "javascript:alert(1)"), ctx)
        assert "javascript" not in out
        assert [d.code for d in ctx.diagnostics] == [DiagnosticCode.unsafe_link]

    def test_external_video_provider_becomes_embed(self):
        ctx = ConversionContext("doc")
        out = _dispatch(_external("video", "https://www.youtube.com/watch?v=abc"), ctx)
        assert "is-provider-youtube" in out
        assert "<!-- wp:embed" in out

    def test_missing_url_is_reported(self):
        ctx = ConversionContext("doc")
        out = _dispatch(block("image", block_id="img9"), ctx)
        assert "blocksync-missing-media" in out
        assert [d.code for d in ctx.diagnostics] == [DiagnosticCode.unresolved_media]

    @pytest.mark.parametrize("block_type", ["file", "pdf"])
    def test_file_blocks_link_by_name(self, block_type):
        ctx = ConversionContext("doc")
        node = _external(block_type, "https://cdn.example.com/files/Annual%20Report.pdf")
        out = _dispatch(node, ctx)
        assert '<div class="wp-block-file">' in out
        assert ">Annual Report.pdf</a>" in out

    def test_file_name_from_payload(self):
        ctx = ConversionContext("doc")
        node = _external("file", "https://cdn.example.com/f/x.bin", name="Installer")
        assert ">Installer</a>" in _dispatch(node, ctx)

    def test_file_caption_is_the_link_label(self):
        ctx = ConversionContext("doc")
        node = _external("file", "https://cdn.example.com/f/x.bin", caption=[text("Release notes")])
        out = _dispatch(node, ctx)
        assert ">Release notes</a>" in out
        assert "figcaption" not in out

    def test_file_without_url_shows_caption(self):
        ctx = ConversionContext("doc")
        out = _dispatch(block("file", block_id="f9", caption=[text("Q3 & Q4")]), ctx)
        assert '<span class="blocksync-missing-media">Q3 &amp; Q4</span>' in out
        assert "figcaption" not in out

    def test_unsafe_block_id_cannot_break_placeholder(self, media):
        ctx = ConversionContext("doc", media=media)
        out = _dispatch(_hosted_image(block_id="x --><script>alert(1)</script>"), ctx)
        assert "<script>" not in out
        assert out.count("-->") == out.count("<!--")

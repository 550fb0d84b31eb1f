"""Tests for blocksync.config — models and YAML loader."""

import os
from unittest.mock import patch

import pytest
import yaml
from pydantic import ValidationError

from blocksync.config.loader import DEFAULT_CONFIG_TEMPLATE, _expand_env_vars, config_paths, load_config
from blocksync.config.models import (
    BlocksyncConfig,
    ConversionConfig,
    HierarchyConfig,
    MediaConfig,
    SyncConfig,
)


# ── BlocksyncConfig defaults ───────────────────────────────────────


class TestBlocksyncConfigDefaults:
    def test_default_log_level(self, sample_config):
        assert sample_config.log_level == "info"

    def test_default_log_format(self, sample_config):
        assert sample_config.log_format == "text"

    def test_default_conversion_depth(self, sample_config):
        assert sample_config.conversion.max_depth == 100

    def test_default_media_action(self, sample_config):
        assert sample_config.media.default_action == "link_through"

    def test_default_registry_path(self, sample_config):
        assert sample_config.registry.db_path == ".blocksync/registry.db"

    def test_default_workers(self, sample_config):
        assert sample_config.sync.max_workers == 4


# ── Individual config model validations ─────────────────────────────


class TestConversionConfig:
    def test_depth_bounds(self):
        with pytest.raises(ValidationError):
            ConversionConfig(max_depth=0)
        with pytest.raises(ValidationError):
            ConversionConfig(max_depth=5000)

    def test_default_schemes(self):
        assert ConversionConfig().allowed_schemes == ["http", "https", "mailto", "tel"]


class TestMediaConfig:
    def test_invalid_action_rejected(self):
        with pytest.raises(ValidationError):
            MediaConfig(default_action="download")

    def test_rules_from_dicts(self):
        cfg = MediaConfig(policies=[{"pattern": "cdn.test", "action": "must_copy"}])
        assert cfg.policies[0].action == "must_copy"

    def test_expiring_patterns_cover_source_storage(self):
        assert any("notion-static" in p for p in MediaConfig().expiring_patterns)


class TestHierarchyConfig:
    @pytest.mark.parametrize("given,expected", [(0, 1), (-3, 1), (5, 5), (10, 10), (42, 10)])
    def test_depth_is_clamped(self, given, expected):
        assert HierarchyConfig(max_depth=given).max_depth == expected


class TestSyncConfig:
    def test_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncConfig(max_workers=0)


class TestTemplate:
    def test_template_parses_to_valid_config(self):
        cfg = BlocksyncConfig(**yaml.safe_load(DEFAULT_CONFIG_TEMPLATE))
        assert cfg == BlocksyncConfig()


# ── Env var expansion ───────────────────────────────────────────────


class TestExpandEnvVars:
    def test_expands_string_variable(self):
        with patch.dict(os.environ, {"BLOCKSYNC_URL": "https://docs.test"}):
            assert _expand_env_vars("${BLOCKSYNC_URL}") == "https://docs.test"

    def test_missing_var_becomes_empty(self):
        with patch.dict(os.environ, {}, clear=True):
            assert _expand_env_vars("${NOPE_NOT_SET}") == ""

    def test_expands_nested_structures(self):
        with patch.dict(os.environ, {"A": "alpha", "B": "beta"}):
            result = _expand_env_vars({"x": ["${A}", {"y": "${B}"}]})
        assert result == {"x": ["alpha", {"y": "beta"}]}

    def test_non_string_passthrough(self):
        assert _expand_env_vars(42) == 42
        assert _expand_env_vars(None) is None

    def test_mixed_text_and_var(self):
        with patch.dict(os.environ, {"HOST": "localhost"}):
            assert _expand_env_vars("http://${HOST}:8080/") == "http://localhost:8080/"


# ── load_config ─────────────────────────────────────────────────────


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _isolated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")

    def test_returns_defaults_when_no_file_exists(self):
        assert load_config() == BlocksyncConfig()

    def test_loads_valid_yaml(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text(
            "log_level: debug\nconversion:\n  max_depth: 12\n"
        )
        cfg = load_config()
        assert cfg.log_level == "debug"
        assert cfg.conversion.max_depth == 12

    def test_empty_file_is_skipped(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("")
        assert load_config() == BlocksyncConfig()

    def test_raises_on_invalid_yaml(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("conversion: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config()

    def test_raises_on_invalid_config_values(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("log_format: xml\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config()

    def test_invalid_values_name_the_field(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("sync:\n  max_workers: 0\nlog_format: xml\n")
        with pytest.raises(ValueError) as exc:
            load_config()
        message = str(exc.value)
        assert "sync.max_workers:" in message
        assert "log_format:" in message
        assert "[type=" not in message

    def test_raises_on_non_mapping(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_config()

    def test_cli_path_takes_priority(self, tmp_path):
        (tmp_path / "blocksync.yaml").write_text("log_level: warn\n")
        cli_file = tmp_path / "custom.yaml"
        cli_file.write_text("log_level: error\n")
        assert load_config(str(cli_file)).log_level == "error"

    def test_user_global_config_used_as_fallback(self, tmp_path):
        global_dir = tmp_path / "fakehome" / ".blocksync"
        global_dir.mkdir(parents=True)
        (global_dir / "config.yaml").write_text("sync:\n  max_workers: 9\n")
        assert load_config().sync.max_workers == 9

    def test_config_paths_order(self, tmp_path):
        paths = config_paths("custom.yaml")
        assert [p.name for p in paths] == ["custom.yaml", "blocksync.yaml", "config.yaml"]
        assert paths[2] == tmp_path / "fakehome" / ".blocksync" / "config.yaml"
        assert len(config_paths()) == 2

    def test_env_vars_expanded_in_loaded_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SITE_URL", "https://docs.test")
        (tmp_path / "blocksync.yaml").write_text('output:\n  base_url: "${SITE_URL}"\n')
        assert load_config().output.base_url == "https://docs.test"

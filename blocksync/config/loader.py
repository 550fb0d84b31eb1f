"""YAML config loading with env var expansion."""

import logging
import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import BlocksyncConfig

logger = logging.getLogger(__name__)

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def config_paths(cli_path: str | None = None) -> list[Path]:
    """Candidate config files, highest priority first."""
    paths = [Path(cli_path)] if cli_path else []
    paths.append(Path("./blocksync.yaml"))
    paths.append(Path.home() / ".blocksync" / "config.yaml")
    return paths


def load_config(cli_path: str | None = None) -> BlocksyncConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults.

    Empty files are skipped so a placeholder ``blocksync.yaml`` does not hide
    the user-global one.
    """
    for path in config_paths(cli_path):
        if not path.exists():
            continue
        raw = _read_mapping(path)
        if raw is None:
            continue
        try:
            config = BlocksyncConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {_summarize(e)}") from e
        logger.debug("loaded config from %s", path)
        return config

    return BlocksyncConfig()


def _read_mapping(path: Path) -> dict | None:
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is not None and not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: expected a mapping at top level")
    return raw


def _summarize(error: ValidationError) -> str:
    """One ``section.field: message`` entry per validation failure."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "config"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `blocksync config init`
DEFAULT_CONFIG_TEMPLATE = """\
# blocksync.yaml

# Block conversion
conversion:
  max_depth: 100               # nesting levels before a subtree is truncated
  allowed_schemes: [http, https, mailto, tel]
  source_hosts: [notion.so, www.notion.so]

# Media handling
media:
  default_action: "link_through"   # must_copy | link_through
  # expiring_patterns: []          # source hosts whose URLs expire (always copied)
  policies:
    - pattern: "images.unsplash.com"
      action: "link_through"
    - pattern: "giphy.com"
      action: "link_through"
  assets_dir: ".blocksync/assets"
  download_timeout: 30

# Identity registries (links, media, hierarchy snapshot)
registry:
  db_path: ".blocksync/registry.db"

# Output
output:
  base_dir: ".blocksync/site"
  base_url: "/"
  create_index: true

# Navigation
hierarchy:
  max_depth: 5                 # 1-10

# Batch sync
sync:
  max_workers: 4

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""

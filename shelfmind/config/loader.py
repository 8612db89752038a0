"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
#   1. config/config.yaml  - Static defaults checked into the repo
#   2. .env file           - Local developer overrides (not committed)
#   3. Environment vars    - Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# Settings-derived values on top.  load_settings() builds a validated
# Settings object and turns validation failures into ConfigurationError.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from shelfmind.config.settings import Settings
from shelfmind.utils.errors import ConfigurationError


def load_settings(**overrides: Any) -> Settings:
    """Build :class:`Settings`, raising :class:`ConfigurationError` when invalid."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid settings: {exc}") from exc


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; constructed from the environment if omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(message=f"Malformed config file {path}: {exc}") from exc
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"Config file {path} must contain a mapping")

    s = settings or load_settings()
    env_overrides = {
        "app": {
            "host": s.app_host,
            "port": s.app_port,
            "env": s.app_env,
        },
        "embedding": {
            "backend": s.get_embedding_backend(),
            "batch_limit": s.embedding_batch_limit,
            "max_attempts": s.embedding_max_attempts,
            "timeout": s.embedding_timeout,
        },
        "chunking": {
            "max_tokens": s.chunk_max_tokens,
            "overlap_tokens": s.chunk_overlap_tokens,
        },
        "vectorize": {
            "batch_size": s.vectorize_batch_size,
        },
        "search": {
            "semantic_weight": s.hybrid_semantic_weight,
            "keyword_weight": s.hybrid_keyword_weight,
        },
        "storage": {
            "db_path": s.db_path,
            "library_dir": s.library_dir,
        },
        "logging": {
            "level": s.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

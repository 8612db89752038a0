"""Configuration: pydantic-settings ``Settings`` plus the YAML loader."""

from shelfmind.config.loader import load_config, load_settings
from shelfmind.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]

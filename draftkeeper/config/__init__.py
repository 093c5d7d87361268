"""Configuration module for draftkeeper."""

from draftkeeper.config.loader import get_config_path, load_config
from draftkeeper.config.schema import Config, DraftsConfig

__all__ = ["Config", "DraftsConfig", "load_config", "get_config_path"]

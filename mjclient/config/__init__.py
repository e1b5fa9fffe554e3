"""Configuration module for mjclient."""

from mjclient.config.loader import get_config_path, load_config, save_config
from mjclient.config.schema import MidjourneyConfig

__all__ = ["MidjourneyConfig", "get_config_path", "load_config", "save_config"]

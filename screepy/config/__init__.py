"""Configuration management for screepy."""

from screepy.config.loader import Config, get_default_config, load_config

__all__ = ["Config", "get_default_config", "load_config"]

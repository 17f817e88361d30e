"""Configuration module for polyinit."""

from polyinit.config.loader import get_config_path, load_config
from polyinit.config.schema import Config, Options

__all__ = ["Config", "Options", "load_config", "get_config_path"]

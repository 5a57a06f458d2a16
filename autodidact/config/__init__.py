"""Configuration module."""

from autodidact.config.schema import (
    Config,
    get_config_path,
    load_config,
    save_config,
)

__all__ = ["Config", "load_config", "save_config", "get_config_path"]

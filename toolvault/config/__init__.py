"""Configuration loading for toolvault."""

from toolvault.config.settings import (
    ToolvaultSettings,
    default_config_dir,
    default_config_path,
    load_settings,
)

__all__ = ["ToolvaultSettings", "default_config_dir", "default_config_path", "load_settings"]

"""Configuration management module."""

from catalogview.core.config.settings import (
    CatalogViewConfig,
    ConfigManager,
    LoggingConfig,
    MaterializeConfig,
    StorageConfig,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "CatalogViewConfig",
    "ConfigManager",
    "LoggingConfig",
    "MaterializeConfig",
    "StorageConfig",
    "get_default_config",
    "load_config_from_env",
]

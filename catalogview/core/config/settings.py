"""Configuration management for materialization runs."""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from catalogview.core.exceptions import ConfigError
from catalogview.core.logging import bind


@dataclass
class StorageConfig:
    """DuckDB storage configuration."""

    database: str = ":memory:"
    threads: int = 1
    write_chunk_size: int = 2000

    def __post_init__(self) -> None:
        if self.threads <= 0:
            raise ConfigError("storage.threads must be positive", {"threads": self.threads})
        if self.write_chunk_size <= 0:
            raise ConfigError(
                "storage.write_chunk_size must be positive",
                {"write_chunk_size": self.write_chunk_size},
            )


@dataclass
class MaterializeConfig:
    """Materialization pass configuration."""

    hourly_capacity: int = 72
    daily_capacity: int = 30
    required_kinds: tuple[str, ...] = ("models", "endpoints", "providers")
    optional_kinds: tuple[str, ...] = ("uptimes",)

    def __post_init__(self) -> None:
        if self.hourly_capacity <= 0 or self.daily_capacity <= 0:
            raise ConfigError(
                "rolling window capacities must be positive",
                {"hourly_capacity": self.hourly_capacity, "daily_capacity": self.daily_capacity},
            )
        self.required_kinds = tuple(self.required_kinds)
        self.optional_kinds = tuple(self.optional_kinds)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None


@dataclass
class CatalogViewConfig:
    """Top-level catalogview configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    materialize: MaterializeConfig = field(default_factory=MaterializeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "CatalogViewConfig":
        """Create a configuration from a nested dictionary."""
        try:
            storage_config = StorageConfig(**config_dict.get("storage", {}))
            materialize_config = MaterializeConfig(**config_dict.get("materialize", {}))
            logging_config = LoggingConfig(**config_dict.get("logging", {}))
        except TypeError as exc:
            raise ConfigError(f"Unknown configuration key: {exc}") from exc

        return cls(storage=storage_config, materialize=materialize_config, logging=logging_config)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary."""
        return {
            "storage": asdict(self.storage),
            "materialize": asdict(self.materialize),
            "logging": asdict(self.logging),
        }


class ConfigManager:
    """Loads configuration from a TOML file overlaid with environment variables."""

    def __init__(self, config_path: Path | None = None, *, use_env: bool = True):
        self.config_path = config_path or Path.home() / ".catalogview" / "config.toml"
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> CatalogViewConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                bind(path=str(self.config_path), error=str(exc)).warning("Failed to load config, using defaults")
                config_dict = {}

        if self.use_env:
            config_dict = _deep_update(config_dict, load_config_from_env())
        return CatalogViewConfig.from_dict(config_dict)

    def get_config(self) -> CatalogViewConfig:
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates and re-validate."""
        self.config = CatalogViewConfig.from_dict(_deep_update(self.config.to_dict(), updates))


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(dict(d.get(k, {})), v)
        else:
            d[k] = v
    return d


def get_default_config() -> CatalogViewConfig:
    return CatalogViewConfig()


def load_config_from_env() -> dict[str, Any]:
    """Load configuration overrides from ``CATALOGVIEW_*`` environment variables."""
    config: dict[str, Any] = {}

    storage_config: dict[str, Any] = {}
    if os.getenv("CATALOGVIEW_DATABASE"):
        storage_config["database"] = os.getenv("CATALOGVIEW_DATABASE")
    threads = os.getenv("CATALOGVIEW_THREADS")
    if threads is not None:
        storage_config["threads"] = _parse_int("CATALOGVIEW_THREADS", threads)
    chunk_size = os.getenv("CATALOGVIEW_WRITE_CHUNK_SIZE")
    if chunk_size is not None:
        storage_config["write_chunk_size"] = _parse_int("CATALOGVIEW_WRITE_CHUNK_SIZE", chunk_size)
    if storage_config:
        config["storage"] = storage_config

    materialize_config: dict[str, Any] = {}
    hourly = os.getenv("CATALOGVIEW_HOURLY_CAPACITY")
    if hourly is not None:
        materialize_config["hourly_capacity"] = _parse_int("CATALOGVIEW_HOURLY_CAPACITY", hourly)
    daily = os.getenv("CATALOGVIEW_DAILY_CAPACITY")
    if daily is not None:
        materialize_config["daily_capacity"] = _parse_int("CATALOGVIEW_DAILY_CAPACITY", daily)
    if materialize_config:
        config["materialize"] = materialize_config

    logging_config: dict[str, Any] = {}
    if os.getenv("CATALOGVIEW_LOG_LEVEL"):
        logging_config["level"] = os.getenv("CATALOGVIEW_LOG_LEVEL")
    if os.getenv("CATALOGVIEW_LOG_FILE"):
        logging_config["file"] = os.getenv("CATALOGVIEW_LOG_FILE")
    if logging_config:
        config["logging"] = logging_config

    return config


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer", {name: raw}) from exc

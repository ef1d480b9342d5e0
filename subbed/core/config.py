"""Configuration settings for the subscription feed service."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from subbed.core.constants import YOUTUBE_BASE_URL

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml."""

    model_config = SettingsConfigDict(  # type: ignore[assignment]
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars not defined in model
    )

    # Storage
    storage_backend: Literal["auto", "mongodb", "local"] = "auto"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "subbed"
    mongodb_timeout_ms: int = 1500
    store_user_id: str = "local"
    data_dir: str = "data"
    subscriptions_file: str | None = None
    settings_file: str | None = None

    # Redis (feed document cache)
    redis_url: str = "redis://localhost:6379"
    redis_db: int = 0
    redis_key_prefix: str = "subbed"
    redis_enabled: bool = True

    # YouTube upstream
    youtube_base_url: str = YOUTUBE_BASE_URL
    user_agent: str = "subbed-app (+https://subbed.app)"

    # Outbound HTTP timing
    resolver_timeout: float = 6.0
    feed_timeout: float = 8.0
    feed_attempts: int = 3
    feed_backoff: float = 0.5
    classifier_timeout: float = 5.0
    classifier_attempts: int = 2
    classifier_backoff: float = 0.3

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_storage: str = "memory"  # "redis" or "memory"

    # Prometheus
    prometheus_enabled: bool = True
    prometheus_path: str = "/metrics"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Convenience properties
    @property
    def data_path(self) -> Path:
        """Get data directory as Path."""
        return Path(self.data_dir)

    @property
    def subscriptions_path(self) -> Path:
        """Path of the local subscriptions JSON file."""
        if self.subscriptions_file:
            return Path(self.subscriptions_file)
        return self.data_path / "subscriptions.json"

    @property
    def settings_path(self) -> Path:
        """Path of the local user settings JSON file."""
        if self.settings_file:
            return Path(self.settings_file)
        return self.data_path / "settings.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_yaml_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to ./config.yaml or ./config.yml

    Returns:
        Dictionary with configuration values
    """

    if config_path is None:
        # Try default locations
        possible_paths = [
            Path("config.yaml"),
            Path("config.yml"),
        ]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not Path(config_path).exists():
        return {}

    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config file %s: %s", config_path, e)
        return {}


# YAML section -> {yaml key: settings attribute}
_YAML_SECTIONS: dict[str, dict[str, str]] = {
    "storage": {
        "backend": "storage_backend",
        "mongodb_url": "mongodb_url",
        "mongodb_database": "mongodb_database",
        "user_id": "store_user_id",
        "data_dir": "data_dir",
    },
    "redis": {
        "url": "redis_url",
        "db": "redis_db",
        "enabled": "redis_enabled",
    },
    "youtube": {
        "base_url": "youtube_base_url",
        "user_agent": "user_agent",
    },
    "http": {
        "resolver_timeout": "resolver_timeout",
        "feed_timeout": "feed_timeout",
        "feed_attempts": "feed_attempts",
        "feed_backoff": "feed_backoff",
        "classifier_timeout": "classifier_timeout",
        "classifier_attempts": "classifier_attempts",
        "classifier_backoff": "classifier_backoff",
    },
    "rate_limit": {
        "enabled": "rate_limit_enabled",
        "default": "rate_limit_default",
        "storage": "rate_limit_storage",
    },
    "prometheus": {
        "enabled": "prometheus_enabled",
        "path": "prometheus_path",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
    },
}


def apply_yaml_config(settings: Settings, config: dict[str, Any]) -> Settings:
    """
    Apply YAML configuration to settings object.

    Environment variables take precedence over YAML config: a value is only
    taken from YAML when the field was not set explicitly.

    Args:
        settings: Settings object to update
        config: Configuration dictionary from YAML

    Returns:
        Updated Settings object
    """
    explicit = settings.model_fields_set
    updates: dict[str, Any] = {}

    for section, mapping in _YAML_SECTIONS.items():
        values = config.get(section)
        if not isinstance(values, dict):
            continue
        for yaml_key, attr in mapping.items():
            if yaml_key in values and attr not in explicit:
                updates[attr] = values[yaml_key]

    if not updates:
        return settings

    # Re-validate so YAML values get the same coercion as env vars
    return Settings.model_validate({**settings.model_dump(include=explicit), **updates})


def get_settings_with_yaml(config_path: Path | str | None = None) -> Settings:
    """
    Get settings with YAML configuration applied.

    Priority: Environment Variables > YAML Config > Defaults

    Args:
        config_path: Optional path to config file

    Returns:
        Settings object with YAML configuration applied
    """
    settings = get_settings()
    config = load_yaml_config(config_path)
    return apply_yaml_config(settings, config)

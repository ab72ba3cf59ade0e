"""Configuration management using Pydantic models."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_STORAGE_PATH,
    DEFAULT_TIMEOUT_SECONDS,
)
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "FORM_API_CONFIG"
BASE_URL_ENV = "FORM_API_BASE_URL"
LOG_LEVEL_ENV = "FORM_API_LOG_LEVEL"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class ClientConfig(BaseModel):
    """API client configuration, fixed at construction."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:8000"
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff_factor: float = Field(default=DEFAULT_BACKOFF_FACTOR, ge=0)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    prompt_cancelable: bool = False
    user_agent: str = "form-api-client/0.1.0"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined onto the base URL with a single slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    def url_for(self, path: str) -> str:
        """Absolute URL for a request path."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"


class StorageConfig(BaseModel):
    """Persisted storage settings."""
    path: str = DEFAULT_STORAGE_PATH


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(LOG_LEVELS)}")
        return v


class Config(BaseModel):
    """Root configuration model."""
    api: ClientConfig = Field(default_factory=ClientConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Settings:
    """Application settings loaded from config.yaml and the environment."""

    def __init__(self, config_path: Optional[Path] = None):
        """Load and validate configuration."""
        self.config_path = Path(config_path or os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))
        self._load_config()

    def _read_yaml(self) -> dict:
        if not self.config_path.exists():
            logger.debug(f"No config file at {self.config_path}, using defaults")
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
        if not isinstance(raw_config, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping")
        return raw_config

    def _apply_env(self, raw_config: dict) -> dict:
        """Environment variables override file values."""
        base_url = os.environ.get(BASE_URL_ENV)
        if base_url:
            raw_config.setdefault("api", {})["base_url"] = base_url
        log_level = os.environ.get(LOG_LEVEL_ENV)
        if log_level:
            raw_config.setdefault("logging", {})["level"] = log_level
        return raw_config

    def _load_config(self) -> None:
        """Load configuration from YAML using Pydantic."""
        try:
            raw_config = self._apply_env(self._read_yaml())
            config = Config(**raw_config)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.error(f"Failed to load config: {e}")
            raise ConfigError(f"Invalid configuration in {self.config_path}: {e}") from e

        self.client = config.api
        self.storage_path = Path(config.storage.path)
        self.log_level = config.logging.level


# Singleton cache for settings
_SETTINGS_SINGLETON = None

def get_settings() -> Settings:
    """Get (cached) application settings singleton."""
    global _SETTINGS_SINGLETON
    if _SETTINGS_SINGLETON is None:
        _SETTINGS_SINGLETON = Settings()
    return _SETTINGS_SINGLETON

def reload_settings() -> Settings:
    """Force reload of application settings singleton."""
    global _SETTINGS_SINGLETON
    _SETTINGS_SINGLETON = Settings()
    return _SETTINGS_SINGLETON

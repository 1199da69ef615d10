"""Configuration management using pydantic-settings.

Configuration is loaded with the following precedence:
1. CLI arguments (highest priority)
2. Environment variables (TODO_SERVICE_* prefix)
3. Global config file (~/.config/todo-service/config.toml)
4. Built-in defaults (lowest priority)
"""

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_path() -> Path:
    """Get the global config file path (XDG compliant).

    Returns:
        Path to config file:
        - Linux/macOS: ~/.config/todo-service/config.toml
        - Windows: %APPDATA%/todo-service/config.toml
    """
    if os.name == "nt":  # Windows
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:  # Linux/macOS
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "todo-service" / "config.toml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment variables use the TODO_SERVICE_ prefix:
    - TODO_SERVICE_HTTP_PORT
    - TODO_SERVICE_LOG_LEVEL
    - TODO_SERVICE_ALLOW_EMPTY_DESCRIPTION
    etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="TODO_SERVICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP server
    http_host: str = Field(default="127.0.0.1", description="HTTP server bind address")
    http_port: int = Field(default=8000, ge=1, le=65535, description="HTTP server port")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    log_file: str | None = Field(default=None, description="Log file path (optional)")

    # Task store
    allow_empty_description: bool = Field(
        default=False,
        description="Accept empty task descriptions instead of rejecting them",
    )

    # Metrics
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics at /metrics")


def get_default_config() -> dict[str, Any]:
    """Get default configuration written by init-config.

    Returns:
        Nested default configuration dictionary
    """
    return {
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
            "log_level": "INFO",
            "log_format": "json",
        },
        "tasks": {
            "allow_empty_description": False,
        },
        "metrics": {
            "enabled": True,
        },
    }


def load_toml_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        path: Path to config file (uses default if None)

    Returns:
        Configuration dictionary (empty if file doesn't exist)
    """
    config_path = path or get_config_path()
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    return {}


def flatten_toml_config(toml_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten nested TOML config to flat dictionary for Settings.

    Args:
        toml_config: Nested TOML configuration

    Returns:
        Flattened configuration dictionary
    """
    overrides: dict[str, Any] = {}

    if "server" in toml_config:
        server = toml_config["server"]
        if "host" in server:
            overrides["http_host"] = server["host"]
        if "port" in server:
            overrides["http_port"] = server["port"]
        for key in ["log_level", "log_format", "log_file"]:
            if key in server:
                overrides[key] = server[key]

    if "tasks" in toml_config and "allow_empty_description" in toml_config["tasks"]:
        overrides["allow_empty_description"] = toml_config["tasks"]["allow_empty_description"]

    if "metrics" in toml_config and "enabled" in toml_config["metrics"]:
        overrides["metrics_enabled"] = toml_config["metrics"]["enabled"]

    return overrides


def load_settings_with_toml(config_path: Path | None = None) -> Settings:
    """Load settings with TOML config as base, env vars as override.

    Args:
        config_path: Optional path to TOML config file

    Returns:
        Settings instance with merged configuration
    """
    toml_config = load_toml_config(config_path)
    overrides = flatten_toml_config(toml_config)

    # Init kwargs beat env vars in pydantic-settings, so drop any key the
    # environment already sets.
    env_names = {key.upper() for key in os.environ}
    overrides = {
        key: value for key, value in overrides.items()
        if f"TODO_SERVICE_{key.upper()}" not in env_names
    }
    return Settings(**overrides)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached)
    """
    return Settings()

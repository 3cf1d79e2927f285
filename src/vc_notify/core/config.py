"""
vc_notify Centralized Configuration

Provides validated, type-safe access to environment variables using Pydantic Settings.

Usage:
    from vc_notify.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Environment Variables:
    VC_NOTIFY_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    VC_NOTIFY_LOG_JSON: Output logs as JSON
    VC_NOTIFY_DATA_DIR: Directory holding the rule database
    VC_NOTIFY_DB_PATH: Rule database path (must live inside the data directory)
    VC_NOTIFY_DUPLICATE_WINDOW_MS: Duplicate suppression window
    VC_NOTIFY_RETRY_AFTER_UNIT: Unit of the platform's retry-after value

External credentials (no VC_NOTIFY_ prefix):
    DISCORD_TOKEN: Bot token used for REST calls
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_env_file() -> Path | None:
    """
    Find .env file next to the project's pyproject.toml.

    Returns:
        Path to .env if found, None otherwise
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):
        if (current / "pyproject.toml").exists():
            env_file = current / ".env"
            if env_file.exists():
                return env_file
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


_ENV_FILE = _find_project_env_file()


class VcNotifySettings(BaseSettings):
    """
    Runtime settings with validation.

    Environment variables are loaded with the VC_NOTIFY_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="VC_NOTIFY_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for vc_notify components",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Discord REST API
    # =========================================================================

    discord_token: Optional[str] = Field(
        default=None,
        validation_alias="DISCORD_TOKEN",
        description="Bot token for the Discord REST API",
    )

    api_base_url: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST API base URL",
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )

    channel_cache_ttl: float = Field(
        default=300.0,
        ge=0,
        description="Seconds a fetched channel may be served from cache",
    )

    # =========================================================================
    # Storage
    # =========================================================================

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding persistent data",
    )

    db_path: Path = Field(
        default=Path("data/bot.db"),
        description="SQLite rule database path (inside data_dir)",
    )

    # =========================================================================
    # Notification Delivery
    # =========================================================================

    duplicate_window_ms: int = Field(
        default=5000,
        ge=0,
        description="Window in which identical notifications are suppressed",
    )

    rate_limit_fallback_ms: int = Field(
        default=1000,
        ge=0,
        description="Backoff used when a rate limit carries no usable retry-after",
    )

    retry_after_unit: Literal["seconds", "milliseconds"] = Field(
        default="seconds",
        description="Unit of the retry-after value reported by the platform",
    )

    network_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries after network-class send failures",
    )

    network_backoff_ms: int = Field(
        default=1000,
        ge=0,
        description="Linear backoff step for network-class retries",
    )

    timezone: str = Field(
        default="Asia/Tokyo",
        description="IANA timezone used for the notification time field",
    )

    timezone_label: str = Field(
        default="JST",
        description="Label appended to the notification time field",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("discord_token", mode="before")
    @classmethod
    def blank_token_is_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def db_path_inside_data_dir(self) -> VcNotifySettings:
        """Reject database paths that escape the data directory."""
        data_root = self.data_dir.resolve()
        resolved = self.db_path.resolve()
        if resolved != data_root and data_root not in resolved.parents:
            raise ValueError(f"db_path must be inside {data_root}: {self.db_path}")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Get log level as logging constant."""
        return getattr(logging, self.log_level)

    @property
    def resolved_db_path(self) -> Path:
        return self.db_path.resolve()


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> VcNotifySettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.

    Returns:
        VcNotifySettings instance with validated configuration
    """
    return VcNotifySettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()

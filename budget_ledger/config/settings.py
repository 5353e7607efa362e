"""
Configuration Management for Budget Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The remote endpoints are the only external dependencies, and both are
optional: a missing sync endpoint simply means the ledger runs offline.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _normalize_endpoint(v: Optional[str]) -> Optional[str]:
    """Blank endpoints mean "not configured"; trailing slashes are dropped."""
    if v is None:
        return None
    v = v.strip().rstrip("/")
    return v or None


class SyncSettings(BaseSettings):
    """Remote sync endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    endpoint: Optional[str] = Field(
        default=None,
        description="Base URL of the sync server (POST/GET {endpoint}/sync)"
    )
    timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="Timeout applied to each push/pull request"
    )
    debounce_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Quiet period after the last edit before an automatic sync"
    )

    @field_validator('endpoint')
    @classmethod
    def normalize_endpoint(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_endpoint(v)

    @property
    def enabled(self) -> bool:
        """Sync is enabled only when an endpoint is configured."""
        return bool(self.endpoint)


class StorageSettings(BaseSettings):
    """Local persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_path: str = Field(
        default="ledger.db",
        description="Path to the SQLite database file"
    )


class AssistantSettings(BaseSettings):
    """AI assistant endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    endpoint: Optional[str] = Field(
        default=None,
        description="Base URL of the assistant backend (POST {endpoint}/ai/query)"
    )
    timeout_seconds: float = Field(
        default=20.0,
        ge=1.0,
        le=120.0,
        description="Timeout for assistant requests"
    )

    @field_validator('endpoint')
    @classmethod
    def normalize_endpoint(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_endpoint(v)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    default_currency: str = Field(
        default="TWD",
        min_length=3,
        max_length=3,
        description="Currency used when a record does not specify one"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator('default_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def assistant(self) -> AssistantSettings:
        return AssistantSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("sync", "storage", "assistant", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

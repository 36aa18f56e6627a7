"""
Configuration Management for Dead Simple Budget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, retention defaults and logging behaviour can all be
changed without touching the ledger code.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where and how the state blob is persisted."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the persisted state blob"
    )
    state_key: str = Field(
        default="deadSimpleBudgetState_v1",
        min_length=1,
        description="Versioned key the state blob is stored under"
    )
    save_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed write is retried"
    )

    @field_validator('state_key')
    @classmethod
    def validate_state_key(cls, v: str) -> str:
        """The key becomes a file name, so path separators are not allowed."""
        if "/" in v or "\\" in v:
            raise ValueError(f"State key must not contain path separators: {v}")
        return v

    @property
    def state_path(self) -> Path:
        """Full path of the state file."""
        return self.data_dir / f"{self.state_key}.json"


class LedgerSettings(BaseSettings):
    """Ledger behaviour defaults."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_LEDGER_",
        extra="ignore"
    )

    default_retention_days: int = Field(
        default=30,
        ge=1,
        description="Retention window for a fresh state"
    )
    fallback_retention_days: int = Field(
        default=45,
        ge=1,
        description="Retention used when a stored state has no usable value"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=3,
        description="Symbol shown next to amounts in messages"
    )


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )


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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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

    for name in ("storage", "ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

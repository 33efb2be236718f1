"""
Configuration Management for SmartSpend

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The SyncConfig (remote URL + lastSynced) is *user* state and lives in local
storage; what lives here is deployment configuration: where data is kept,
how long the debounce window is, which replica backend to talk to.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger store and sync engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTSPEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".smartspend",
        description="Directory holding the persisted ledger and sync config"
    )

    # Sync engine
    debounce_seconds: float = Field(
        default=2.0,
        gt=0.0,
        le=60.0,
        description="Quiet period after the last mutation before auto-push"
    )
    replica_backend: Literal["apps_script", "google_sheets"] = Field(
        default="apps_script",
        description="Which remote replica client to use"
    )
    sync_url: Optional[str] = Field(
        default=None,
        description="Seed SyncConfig URL used when none is stored yet"
    )

    # Remote replica (HTTP)
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0.0,
        le=120.0,
        description="Timeout for push/pull HTTP requests"
    )
    fire_and_forget_push: bool = Field(
        default=True,
        description="Treat any push that does not throw as success (response is not read)"
    )

    # Startup reachability probe
    probe_host: str = Field(
        default="script.google.com",
        description="Host used to decide the initial online flag"
    )
    probe_port: int = Field(
        default=443,
        ge=1,
        le=65535
    )

    @field_validator('sync_url')
    @classmethod
    def blank_url_is_none(cls, v: Optional[str]) -> Optional[str]:
        """An empty URL means 'not configured'."""
        if v is not None and not v.strip():
            return None
        return v


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets replica configuration (direct gspread backend)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before syncing."
            )
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTSPEND_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="stdlib logging level name"
    )
    json_output: bool = Field(
        default=True,
        description="Render JSON lines (False = human-readable console output)"
    )
    history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many audit events to keep in memory for the UI"
    )

    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Note: These are loaded lazily to allow partial configuration
    # (Google Sheets credentials are only needed for that backend)

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    for name in ("ledger", "google_sheets", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

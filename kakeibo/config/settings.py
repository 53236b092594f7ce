"""
Configuration Management for Kakeibo

Environment variables (and an optional .env file) read through
pydantic-settings. The storage backend, the timezone that decides an
expense's month, and the seed lists all live here; an invalid value
fails when the settings are first read.
"""

from functools import lru_cache
from typing import Optional
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

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
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    categories_sheet_name: str = Field(default="categories")
    tags_sheet_name: str = Field(default="tags")
    expenses_sheet_name: str = Field(default="expenses")
    payment_methods_sheet_name: str = Field(default="paymentMethods")
    users_sheet_name: str = Field(default="users")
    audit_sheet_name: str = Field(default="auditLog")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    def sheet_name_for(self, collection: str) -> str:
        """Map a collection name to its worksheet title."""
        mapping = {
            "categories": self.categories_sheet_name,
            "tags": self.tags_sheet_name,
            "expenses": self.expenses_sheet_name,
            "paymentMethods": self.payment_methods_sheet_name,
            "users": self.users_sheet_name,
            "auditLog": self.audit_sheet_name,
        }
        return mapping.get(collection, collection)


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
        description="Minimum level for the structured log"
    )

    # Storage
    storage_backend: str = Field(
        default="google_sheets",
        pattern="^(google_sheets|memory)$",
        description="Document store backend"
    )
    persist_audit_log: bool = Field(
        default=False,
        description="Also write audit events to the auditLog collection"
    )

    # Calendar
    timezone: str = Field(
        default="Asia/Tokyo",
        description="Timezone used to derive an expense's calendar month"
    )

    # Display and seed data
    uncategorized_label: str = Field(
        default="未分類",
        description="Breakdown label for expenses without a category"
    )
    default_categories: str = Field(
        default="食費,日用品,交通費,住居費,水道光熱費,通信費,医療費,娯楽費,その他",
        description="Comma-separated categories created by the seed action"
    )
    default_payment_methods: str = Field(
        default="現金,クレジットカード,PayPay,その他",
        description="Comma-separated payment methods used when none are stored"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA zone names at startup."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def default_categories_list(self) -> list[str]:
        """Get default categories as a list."""
        return [name.strip() for name in self.default_categories.split(",") if name.strip()]

    @property
    def default_payment_methods_list(self) -> list[str]:
        """Get default payment methods as a list."""
        return [
            name.strip()
            for name in self.default_payment_methods.split(",")
            if name.strip()
        ]


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
    # (e.g. the in-memory backend needs no Google credentials).

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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


def validate_all_settings(settings: Optional[Settings] = None) -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus
    {setting_name}_error entries for the failures.
    Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = settings or get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app.storage_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results

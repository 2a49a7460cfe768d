"""
Configuration Management for MyFinance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here. Per-user display
and billing preferences are NOT read from ambient state by the core;
they are packed into a UserPreferences object by the application and
passed to the services that need them.
"""

import warnings
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from myfinance.models.records import Currency


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet holding all collections"
    )

    # Worksheet names within the spreadsheet
    records_sheet_name: str = "Transactions"
    goals_sheet_name: str = "SavingsGoals"
    units_sheet_name: str = "Rooms"
    bills_sheet_name: str = "RentalPayments"
    audit_sheet_name: str = "AuditLog"

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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
        description="Log at DEBUG regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )

    # Persistence
    store_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which record store this deployment uses"
    )

    # Preference defaults
    default_currency: Currency = Currency.NPR
    show_regional_dates: bool = Field(
        default=True,
        description="Show Bikram Sambat dates next to Gregorian ones"
    )
    electricity_rate: Decimal = Field(
        default=Decimal("13"),
        ge=0,
        description="Default electricity tariff per unit"
    )
    water_rate: Decimal = Field(
        default=Decimal("15"),
        ge=0,
        description="Default water tariff per unit"
    )
    negative_usage_policy: str = Field(
        default="reject",
        pattern="^(reject|clamp)$",
        description="What to do when a meter reading goes backwards"
    )

    # Validation thresholds
    max_record_amount: Decimal = Field(
        default=Decimal("10000000"),
        description="Amounts above this are flagged for review"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a record date can be"
    )


class UserPreferences(BaseModel):
    """
    Explicit per-user preferences.

    Owned by the application composition and passed into services.
    """

    default_currency: Currency = Currency.NPR
    show_regional_dates: bool = True
    electricity_rate: Decimal = Field(default=Decimal("13"), ge=0)
    water_rate: Decimal = Field(default=Decimal("15"), ge=0)
    negative_usage_policy: str = Field(default="reject", pattern="^(reject|clamp)$")

    @classmethod
    def from_settings(cls, app: AppSettings) -> "UserPreferences":
        return cls(
            default_currency=app.default_currency,
            show_regional_dates=app.show_regional_dates,
            electricity_rate=app.electricity_rate,
            water_rate=app.water_rate,
            negative_usage_policy=app.negative_usage_policy,
        )


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so a deployment that never touches
    Google Sheets does not need its variables set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

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

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus "<name>_error"
    entries for the failures. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app.store_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results

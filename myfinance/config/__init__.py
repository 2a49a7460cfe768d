"""Configuration package."""

from myfinance.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    UserPreferences,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "UserPreferences",
    "get_settings",
    "validate_all_settings",
]

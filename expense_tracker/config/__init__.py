"""Configuration package."""

from expense_tracker.config.settings import (
    ALLOWED_HASH_ALGORITHMS,
    AppSettings,
    DatabaseSettings,
    SecuritySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ALLOWED_HASH_ALGORITHMS",
    "AppSettings",
    "DatabaseSettings",
    "SecuritySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

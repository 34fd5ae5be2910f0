"""Configuration module for AuthRelay."""

from .logging import (
    JSONFormatter,
    bind_correlation_id,
    correlation_id,
    init_logging,
    reset_correlation_id,
)
from .settings import AppSettings, SettingsValidationError, load_settings

__all__ = [
    "AppSettings",
    "JSONFormatter",
    "SettingsValidationError",
    "bind_correlation_id",
    "correlation_id",
    "init_logging",
    "load_settings",
    "reset_correlation_id",
]

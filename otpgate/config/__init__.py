"""Configuration module for otpgate."""

from .logging import JSONFormatter, correlation_id, init_logging
from .settings import (
    AppSettings,
    GatewaySettings,
    SettingsValidationError,
    load_gateway_settings,
    load_settings,
)

__all__ = [
    "AppSettings",
    "GatewaySettings",
    "JSONFormatter",
    "SettingsValidationError",
    "correlation_id",
    "init_logging",
    "load_gateway_settings",
    "load_settings",
]

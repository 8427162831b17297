"""Typed lookups for objects published on FastAPI application state."""

from __future__ import annotations

from typing import cast

from otpgate.config.settings import AppSettings


def resolve_app_settings(app: object) -> AppSettings:
    """Load app settings from `app.state` with explicit failure mode."""
    state_obj = cast("object", getattr(app, "state", None))
    settings_obj = getattr(state_obj, "settings", None)
    if not isinstance(settings_obj, AppSettings):
        message = "Missing app settings: app.state.settings."
        raise TypeError(message)
    return settings_obj

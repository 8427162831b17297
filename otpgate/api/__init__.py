"""HTTP API for otpgate."""

from .app import create_app

__all__ = ["create_app"]

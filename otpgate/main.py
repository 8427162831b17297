"""otpgate API server entry point."""

from __future__ import annotations

import uvicorn

from otpgate.api import create_app
from otpgate.config import load_settings


def main() -> None:
    """Run the otpgate API server."""
    settings = load_settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.bind,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

"""Shared pytest fixtures for settings, gateway mocks and API clients."""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from otpgate.api.app import StartupDependencies, create_app
from otpgate.config.settings import AppSettings, GatewaySettings, load_settings
from otpgate.otp import GatewayDispatcher
from tests.mocks.mock_sms_gateway import MockSmsGateway

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator
    from pathlib import Path

GATEWAY_ENDPOINT = "http://sms.test/api/http/index.php"
GATEWAY_USERNAME = "gateway-user"
GATEWAY_API_KEY = "gateway-secret-key"  # noqa: S105


@pytest.fixture
def mock_gateway() -> MockSmsGateway:
    """Provide a scripted SMS gateway that accepts requests by default."""
    return MockSmsGateway()


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    """Provide gateway settings pointing at the mock endpoint."""
    return GatewaySettings(
        endpoint=GATEWAY_ENDPOINT,
        username=GATEWAY_USERNAME,
        api_key=GATEWAY_API_KEY,
        sender="MORORE",
        route="OTP",
        template_id="1707174419181876651",
        timeout_seconds=0.5,
    )


@pytest.fixture
async def dispatcher(
    gateway_settings: GatewaySettings,
    mock_gateway: MockSmsGateway,
) -> AsyncIterator[GatewayDispatcher]:
    """Provide a started dispatcher wired to the mock gateway."""
    gateway_dispatcher = GatewayDispatcher(
        settings=gateway_settings,
        transport=mock_gateway.transport(),
    )
    await gateway_dispatcher.startup()
    try:
        yield gateway_dispatcher
    finally:
        await gateway_dispatcher.shutdown()


@pytest.fixture
def app_settings(tmp_path: Path, gateway_settings: GatewaySettings) -> AppSettings:
    """Provide in-memory-backed app settings isolated to the test directory."""
    base = load_settings(
        {
            "OTPGATE_DB_PATH": (tmp_path / "otpgate.sqlite3").as_posix(),
            "OTPGATE_PUBLIC_DIR": (tmp_path / "public").as_posix(),
            "OTPGATE_SESSION_BACKEND": "memory",
        },
    )
    return replace(base, gateway=gateway_settings)


@pytest.fixture
def app_client_factory(
    app_settings: AppSettings,
    mock_gateway: MockSmsGateway,
) -> Iterator[Callable[..., TestClient]]:
    """Build started TestClients whose gateway traffic goes to the mock."""
    stack = ExitStack()

    def _factory(**overrides: object) -> TestClient:
        settings = replace(app_settings, **overrides)
        app = create_app(settings)
        app.state.dependencies = StartupDependencies(
            db=app.state.dependencies.db,
            gateway=GatewayDispatcher(
                settings=settings.gateway,
                transport=mock_gateway.transport(),
            ),
        )
        return stack.enter_context(TestClient(app, raise_server_exceptions=False))

    with stack:
        yield _factory


@pytest.fixture
def app_client(app_client_factory: Callable[..., TestClient]) -> TestClient:
    """Provide a started TestClient using the in-memory session store."""
    return app_client_factory()

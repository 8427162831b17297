"""Tests for SMS gateway dispatch, timeouts and failure classification."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from otpgate.otp import (
    GATEWAY_FAILURE_TIMEOUT,
    GATEWAY_FAILURE_TRANSPORT,
    GatewayDispatcher,
    GatewayDispatcherError,
    build_gateway_request,
)
from tests.conftest import GATEWAY_API_KEY, GATEWAY_USERNAME

if TYPE_CHECKING:
    from _pytest.logging import LogCaptureFixture

    from otpgate.config.settings import GatewaySettings
    from tests.mocks.mock_sms_gateway import MockSmsGateway

RECIPIENT = "919876543210"


def test_build_gateway_request_renders_message_and_metadata(
    gateway_settings: GatewaySettings,
) -> None:
    """Ensure the message embeds the code and validity window from static config."""
    request = build_gateway_request(
        settings=gateway_settings,
        recipient=RECIPIENT,
        credential="4821",
    )

    expected_message = (
        "Hi, 4821 is the Survey Code which you had requested, "
        "it is valid for 10 mins. MORORE"
    )
    if request.message != expected_message:
        raise AssertionError
    if request.recipient != RECIPIENT:
        raise AssertionError
    if request.metadata.sender != "MORORE" or request.metadata.route != "OTP":
        raise AssertionError
    if request.metadata.template_id != "1707174419181876651":
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_sends_single_get_with_gateway_query(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure one GET carries credentials, recipient and routing parameters."""
    request = dispatcher.build_request(recipient=RECIPIENT, credential="4821")

    result = await dispatcher.dispatch(request)

    if not result.accepted:
        raise AssertionError
    if result.payload != {"status": "success", "msgid": "mock-1"}:
        raise AssertionError
    if mock_gateway.call_count != 1:
        raise AssertionError
    if mock_gateway.requests[0].method != "GET":
        raise AssertionError
    params = mock_gateway.last_params
    expected = {
        "username": GATEWAY_USERNAME,
        "apikey": GATEWAY_API_KEY,
        "apirequest": "Text",
        "sender": "MORORE",
        "mobile": RECIPIENT,
        "message": request.message,
        "route": "OTP",
        "TemplateID": "1707174419181876651",
        "format": "JSON",
    }
    if params != expected:
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_keeps_non_json_body_as_text(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure a 2xx body that is not JSON is passed through uninterpreted."""
    mock_gateway.mode = "text"
    mock_gateway.body = "ERROR: insufficient credits"

    result = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="1"),
    )

    if not result.accepted:
        raise AssertionError
    if result.payload != "ERROR: insufficient credits":
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_times_out_within_deadline(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure a hanging gateway yields a timeout result instead of blocking."""
    mock_gateway.mode = "hang"

    result = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="1"),
        timeout=0.05,
    )

    if result.accepted:
        raise AssertionError
    if result.failure != GATEWAY_FAILURE_TIMEOUT:
        raise AssertionError
    if mock_gateway.call_count != 1:
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_non_success_status_preserves_raw_body(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure non-2xx responses are transport errors with the body preserved."""
    mock_gateway.mode = "reject"
    mock_gateway.status_code = 503
    mock_gateway.body = "gateway maintenance"

    result = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="1"),
    )

    if result.failure != GATEWAY_FAILURE_TRANSPORT:
        raise AssertionError
    if result.status_code != 503:
        raise AssertionError
    if result.raw_body != "gateway maintenance":
        raise AssertionError
    if mock_gateway.call_count != 1:
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_connection_failure_is_transport_error(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure connection failures are classified without retrying."""
    mock_gateway.mode = "connect_error"

    result = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="1"),
    )

    if result.failure != GATEWAY_FAILURE_TRANSPORT:
        raise AssertionError
    if result.detail != "Gateway request failed: ConnectError.":
        raise AssertionError
    if mock_gateway.call_count != 1:
        raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_logs_masked_recipient_without_secrets(
    dispatcher: GatewayDispatcher,
    caplog: LogCaptureFixture,
) -> None:
    """Ensure dispatch logs never carry the code, API key or full phone number."""
    caplog.set_level(logging.DEBUG, logger="otpgate")

    _ = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="775533"),
    )

    records = [r for r in caplog.records if r.name.startswith("otpgate")]
    recipients = [getattr(record, "recipient", None) for record in records]
    if "919****210" not in recipients:
        raise AssertionError
    for record in records:
        rendered = f"{record.getMessage()} {record.__dict__}"
        if "775533" in rendered or GATEWAY_API_KEY in rendered:
            raise AssertionError
        if RECIPIENT in rendered:
            raise AssertionError


@pytest.mark.asyncio
async def test_dispatch_before_startup_raises(
    gateway_settings: GatewaySettings,
) -> None:
    """Ensure dispatch outside the lifecycle fails with a deterministic error."""
    gateway_dispatcher = GatewayDispatcher(settings=gateway_settings)

    with pytest.raises(GatewayDispatcherError, match="not started"):
        _ = await gateway_dispatcher.dispatch(
            gateway_dispatcher.build_request(recipient=RECIPIENT, credential="1"),
        )


@pytest.mark.asyncio
async def test_dispatch_unencodable_message_is_transport_error(
    dispatcher: GatewayDispatcher,
    mock_gateway: MockSmsGateway,
) -> None:
    """Ensure request-building faults come back as a result instead of raising."""
    result = await dispatcher.dispatch(
        dispatcher.build_request(recipient=RECIPIENT, credential="12\ud800"),
    )

    if result.failure != GATEWAY_FAILURE_TRANSPORT:
        raise AssertionError
    if result.detail != "Gateway request could not be built: UnicodeEncodeError.":
        raise AssertionError
    if mock_gateway.call_count != 0:
        raise AssertionError

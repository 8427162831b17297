"""Tests for structured logging initialization and formatting."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, cast

from otpgate.config.logging import correlation_id, init_logging

if TYPE_CHECKING:
    import pytest


def test_init_logging_sets_level() -> None:
    """Ensure init_logging sets the expected root logger level."""
    init_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG  # noqa: S101

    init_logging("WARNING")
    assert logging.getLogger().level == logging.WARNING  # noqa: S101


def test_init_logging_keeps_httpx_request_lines_quiet() -> None:
    """Ensure gateway request URLs carrying the API key are not logged at INFO."""
    init_logging("DEBUG")

    if logging.getLogger("httpx").getEffectiveLevel() < logging.WARNING:
        raise AssertionError


def test_json_formatter_outputs_valid_json(capsys: pytest.CaptureFixture[str]) -> None:
    """Ensure JSONFormatter produces parseable JSON with core fields."""
    init_logging("INFO")
    logger = logging.getLogger("test_logger")

    msg = "Test structured message"
    logger.info(msg)

    captured = capsys.readouterr()
    data = cast("dict[str, object]", json.loads(captured.out.strip()))
    assert data["message"] == msg  # noqa: S101
    assert data["level"] == "INFO"  # noqa: S101
    assert data["logger"] == "test_logger"  # noqa: S101
    assert "timestamp" in data  # noqa: S101
    assert data.get("correlation_id") is None  # noqa: S101


def test_json_formatter_includes_correlation_id(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Ensure log output includes the current correlation_id from context."""
    init_logging("INFO")
    logger = logging.getLogger("test_corr")

    token = correlation_id.set("req-123")
    try:
        logger.info("Message with correlation")
    finally:
        correlation_id.reset(token)

    captured = capsys.readouterr()
    data = cast("dict[str, object]", json.loads(captured.out.strip()))
    assert data.get("correlation_id") == "req-123"  # noqa: S101


def test_json_formatter_prefixes_colliding_extra_fields(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Ensure extras merge into the root without overwriting core keys."""
    init_logging("INFO")
    logger = logging.getLogger("test_extra")

    logger.info(
        "Extra data",
        extra={"phone": "919****210", "level": "custom"},
    )

    captured = capsys.readouterr()
    data = cast("dict[str, object]", json.loads(captured.out.strip()))
    assert data.get("phone") == "919****210"  # noqa: S101
    assert data.get("level") == "INFO"  # noqa: S101
    assert data.get("extra_level") == "custom"  # noqa: S101

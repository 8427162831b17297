"""Tests for phone normalization and masking rules."""

from __future__ import annotations

import pytest

from otpgate.otp import mask_phone, normalize_phone


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("9876543210", "919876543210"),
        ("919876543210", "919876543210"),
        (" +91 98765-43210 ", "919876543210"),
        ("(987) 654-3210", "919876543210"),
    ],
)
def test_normalize_phone_strips_non_digits_and_adds_prefix(
    raw: str,
    expected: str,
) -> None:
    """Ensure normalization strips formatting and prepends 91 only when absent."""
    if normalize_phone(raw) != expected:
        raise AssertionError


def test_normalize_phone_without_digits_is_empty() -> None:
    """Ensure digit-free input does not normalize to a bare country prefix."""
    if normalize_phone("call me") != "":
        raise AssertionError


def test_mask_phone_keeps_leading_and_trailing_three_digits() -> None:
    """Ensure masking keeps the outer digits and hides the middle block."""
    masked = mask_phone("919876543210")

    if masked != "919****210":
        raise AssertionError
    if "98765" in masked:
        raise AssertionError


def test_mask_phone_ten_digit_number() -> None:
    """Ensure a bare ten-digit number is masked with the same fixed-length block."""
    if mask_phone("9876543210") != "987****210":
        raise AssertionError


@pytest.mark.parametrize("raw", ["", "12345", "987654321"])
def test_mask_phone_short_numbers_are_fully_masked(raw: str) -> None:
    """Ensure numbers under ten digits reveal nothing."""
    if mask_phone(raw) != "****":
        raise AssertionError

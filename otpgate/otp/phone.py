"""Phone number normalization and masking rules."""

from __future__ import annotations

import re

COUNTRY_PREFIX = "91"
PHONE_MASK = "****"
MASK_VISIBLE_DIGITS = 3
MASK_MIN_DIGITS = 10

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """Strip non-digits and prepend the country prefix when it is missing.

    An input without any digits normalizes to the empty string so callers can
    reject it instead of dispatching to a bare country prefix.
    """
    digits = _NON_DIGITS.sub("", phone)
    if not digits:
        return ""
    if digits.startswith(COUNTRY_PREFIX):
        return digits
    return f"{COUNTRY_PREFIX}{digits}"


def mask_phone(phone: str) -> str:
    """Hide the middle of a phone number for log output.

    Numbers with at least ten digits keep their first and last three digits
    around a fixed-length mask. Shorter numbers are masked entirely, since
    showing six of fewer than ten digits would reveal most of the number.
    """
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) < MASK_MIN_DIGITS:
        return PHONE_MASK
    return (
        f"{digits[:MASK_VISIBLE_DIGITS]}{PHONE_MASK}{digits[-MASK_VISIBLE_DIGITS:]}"
    )

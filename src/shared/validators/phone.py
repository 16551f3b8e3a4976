"""Phone number validation functions."""

import re

E164_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")


def validate_phone_number(phone_number: str) -> str:
    """Validate that a phone number is in E.164 format.

    Surrounding whitespace is stripped before validation.

    Examples:
        >>> validate_phone_number("+56912345678")
        '+56912345678'
        >>> validate_phone_number("912345678")
        Traceback (most recent call last):
        ...
        ValueError: Phone number must be in E.164 format (e.g. +56912345678)

    """
    value = phone_number.strip()
    if not E164_PATTERN.match(value):
        raise ValueError("Phone number must be in E.164 format (e.g. +56912345678)")
    return value

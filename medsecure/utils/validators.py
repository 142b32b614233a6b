"""
Validation Utilities
====================

Input validation for request fields, with security focus.
"""

from __future__ import annotations

import re
from typing import Final, Mapping, Optional

_EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CONTROL_CHARS: Final[re.Pattern[str]] = re.compile(r"[\x00-\x1f\x7f]")


class ValidationError(ValueError):
    """Raised when validation fails."""
    pass


def validate_string_safe(
    value: Optional[str],
    min_length: int = 0,
    max_length: int = 1000,
    allow_empty: bool = False,
    field_name: str = "value",
) -> str:
    """
    Validate and trim a string value.

    Args:
        value: The string to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length
        allow_empty: If False, empty strings are rejected
        field_name: Name of the field for error messages

    Returns:
        Trimmed string

    Raises:
        ValidationError: If validation fails
    """
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    value = value.strip()

    if not allow_empty and not value:
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters"
        )

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters"
        )

    # Check for null bytes (security risk)
    if "\x00" in value:
        raise ValidationError(f"{field_name} contains invalid characters")

    return value


def validate_single_line(
    value: Optional[str],
    max_length: int = 1000,
    field_name: str = "value",
) -> str:
    """
    Validate a short identifier or label that may end up in mail headers.

    Rejects CR, LF and every other control character.
    """
    value = validate_string_safe(value, max_length=max_length, field_name=field_name)
    if _CONTROL_CHARS.search(value):
        raise ValidationError(f"{field_name} contains invalid characters")
    return value


def validate_email(value: Optional[str], field_name: str = "email") -> str:
    """Validate an address and normalise it to lower case."""
    email = validate_string_safe(value, max_length=254, field_name=field_name).lower()
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(f"{field_name} is not a valid email address")
    return email


def require_fields(data: Mapping[str, object], *names: str) -> None:
    """
    Reject a request body missing any of ``names``.

    The message lists every required field, not only the missing ones.
    """
    missing = [name for name in names if not data.get(name)]
    if missing:
        raise ValidationError(f"{', '.join(names)} required")

"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Optional

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
THEME_KEYS = ("accent", "dark", "light")


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an international phone number (E.164 style).

    Spaces, dashes, dots and parentheses are stripped before matching.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    cleaned = re.sub(r"[\s\-().]", "", phone)
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Invalid phone number format")
    return cleaned


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_hex_color(color: Optional[str]) -> Optional[str]:
    """Validate a #RRGGBB color"""
    if color is None:
        return color
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError("Invalid hex color. Use format #RRGGBB")
    return color


def validate_theme_config(theme: Optional[dict]) -> Optional[dict]:
    """Validate white-label theme colors (accent, dark, light)"""
    if theme is None:
        return theme

    unknown = set(theme) - set(THEME_KEYS)
    if unknown:
        raise ValueError(f"Unknown theme keys: {', '.join(sorted(unknown))}")

    for key, value in theme.items():
        try:
            validate_hex_color(value)
        except ValueError as e:
            raise ValueError(f"{key}: {e}") from e
    return theme


def validate_length(value: Optional[str], field: str, min_len: int = 0, max_len: int = 255):
    """Validate stripped string length; returns the stripped value"""
    if value is None:
        return value
    value = value.strip()
    if len(value) < min_len:
        raise ValueError(f"{field} must be at least {min_len} characters")
    if len(value) > max_len:
        raise ValueError(f"{field} must be at most {max_len} characters")
    return value


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize aware datetimes to naive UTC (the storage convention)"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

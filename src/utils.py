"""Shared utilities used across the reservation assistant."""

import re
from datetime import datetime, tzinfo
from typing import Any, Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("06 12 34 56 78")
        '0612345678'
        >>> normalize_phone("+33 (6) 12-34-56-78")
        '+33612345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_party_size(value: Any) -> Optional[int]:
    """Parse a party size from a number or numeric string.

    Returns None for anything that is not a positive whole number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 1 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdecimal() and int(text) >= 1:
            return int(text)
    return None


def seats_from_cell(value: Any) -> int:
    """Read a stored PartySize cell, treating missing or garbled values as 0."""
    try:
        return max(int(str(value).strip()), 0)
    except (TypeError, ValueError):
        return 0


def to_local(instant: datetime, tz: tzinfo) -> datetime:
    """Express an instant in the restaurant timezone.

    Naive datetimes are taken to already be restaurant-local.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def parse_instant(value: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """Parse an ISO-8601 string into a restaurant-local aware datetime."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_local(datetime.fromisoformat(text), tz)
    except ValueError:
        return None

"""
License utility functions for expiry and date parsing logic.
"""

from datetime import datetime, timezone
from typing import Optional


class InvalidExpiryError(ValueError):
    """An expiry value could not be parsed into a date."""
    pass


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_expiry(value: Optional[str]) -> Optional[datetime]:
    """Parse an admin supplied expiry date.

    Accepts ISO 8601 dates (``2026-12-31``) and datetimes, with or without
    offset and with a trailing ``Z``. Values without an offset are read
    as UTC.

    Args:
        value: The raw string from the request. Empty or None means no expiry.

    Returns:
        A timezone-aware datetime, or None if the license never expires.

    Raises:
        InvalidExpiryError: If the value is not a valid date.
    """
    if value is None:
        return None

    text = value.strip()
    if not text:
        return None

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidExpiryError(f"Invalid expires_at date format: {value!r}") from e

    try:
        return ensure_utc(parsed)
    except OverflowError as e:
        raise InvalidExpiryError("Date must be between year 0001 and 9999") from e


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Check if a license has expired.

    Args:
        expires_at: The expiry instant, or None for licenses that never expire.
        now: Optional override for the current time (used for testing).

    Returns:
        True if the expiry instant is strictly before now.
    """
    if expires_at is None:
        return False

    if now is None:
        now = utc_now()

    return ensure_utc(expires_at) < ensure_utc(now)


"""
Version tokens exchanged with clients.

A token is the weak validator ``W/"<unix milliseconds>"`` of an entity's
``updated_at``. Tokens are lossy to the millisecond; two instants with the
same millisecond value are the same version.
"""
import re
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_DIGITS = re.compile(r"-?\d{1,20}")


def to_millis(instant: datetime) -> int:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt_timezone.utc)
    return (instant - EPOCH) // _ONE_MS


def encode(instant: datetime) -> str:
    return f'W/"{to_millis(instant)}"'


def decode(token: Optional[str]) -> Optional[datetime]:
    """Parse a token back to a UTC instant; None for anything unparseable."""
    if not token or not token.strip():
        return None
    value = token.strip().replace('W/"', "").replace('"', "")
    if not _DIGITS.fullmatch(value):
        return None
    try:
        return EPOCH + timedelta(milliseconds=int(value))
    except (ValueError, OverflowError):
        return None


def same_version(current: datetime, expected: datetime) -> bool:
    return to_millis(current) == to_millis(expected)

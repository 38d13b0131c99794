"""
Clock and ID Provider - timestamps and session identifiers
"""

import random
import string
from datetime import datetime, timezone
from typing import Any, Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase


class Clock:
    """Source of the current time. Subclass to control time in tests."""
    
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in UTC"""
    
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC string with millisecond precision.
    
    Example: 2024-05-01T10:00:00.000Z
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp supplied by a client or a query string.
    
    Accepts ISO-8601 strings (date-only, naive or 'Z' suffixed) and
    epoch milliseconds. Naive values are taken as UTC.
    
    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None
    
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    
    if not isinstance(value, str) or not value.strip():
        return None
    
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def generate_session_id(clock: Clock) -> str:
    """Generate a session id of the form sess_<epoch-ms>_<9 base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"sess_{epoch_millis(clock.now())}_{suffix}"

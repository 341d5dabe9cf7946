"""
Timestamp utilities for consistent time handling across the system.
"""

import time
from datetime import datetime
from typing import Optional


def now_ms() -> int:
    """Current Unix time in integer milliseconds."""
    return int(time.time() * 1000)


def next_after(previous: Optional[int]) -> int:
    """Return a millisecond timestamp strictly greater than `previous`.

    Args:
        previous: Last timestamp handed out for the same record (optional)

    Returns:
        max(now, previous + 1)
    """
    current = now_ms()
    if previous is not None and current <= previous:
        return previous + 1
    return current


def to_datetime(timestamp_ms: Optional[int] = None) -> datetime:
    """Convert a millisecond timestamp to a datetime object.

    Args:
        timestamp_ms: Unix timestamp in milliseconds (optional, uses current time if None)

    Returns:
        datetime object
    """
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return datetime.fromtimestamp(timestamp_ms / 1000)

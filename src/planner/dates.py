"""
Date token resolution for chat messages.

Turns the date part of a message ("today", "tomorrow", "May 15, 2025", ...)
into a local datetime. Unparseable tokens are reported as a
``DateResolutionFailure`` value instead of an exception so callers can reply
with a clarification.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from dateutil import parser as date_parser

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class DateResolutionFailure:
    token: str
    reason: str


DateResolution = Union[datetime, DateResolutionFailure]


# PUBLIC_INTERFACE
def resolve_date(token: str, now: Optional[datetime] = None, clock: Clock = datetime.now) -> DateResolution:
    """
    Resolve a trimmed date token against the local wall-clock.

    - 'today' -> now
    - 'tomorrow' -> now + 1 day, same time of day
    - anything else -> generic parse; components missing from the token are
      taken from today's date at 00:00

    Returns:
        The resolved datetime, or a DateResolutionFailure.
    """
    current = now if now is not None else clock()
    text = (token or "").strip()
    lowered = text.lower()

    if lowered == "today":
        return current
    if lowered == "tomorrow":
        return current + timedelta(days=1)
    if not text:
        return DateResolutionFailure(token=text, reason="empty date")

    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        return date_parser.parse(text, default=midnight)
    except (ValueError, OverflowError) as e:
        return DateResolutionFailure(token=text, reason=str(e))


def format_date(value: datetime) -> str:
    """Human form used in chat replies, e.g. 'May 15, 2025'."""
    return f"{value:%B} {value.day}, {value.year}"

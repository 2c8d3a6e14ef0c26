"""UTC calendar helpers.

All timestamps are integer milliseconds since the epoch. Competition dates
and times are interpreted in UTC.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta

MS_PER_MINUTE = 60_000
MS_PER_DAY = 86_400_000
MINUTES_PER_DAY = 1440


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def minute_of_day(ts_ms: int) -> int:
    """UTC minute-of-day (0..1439) for a timestamp."""
    return (ts_ms // MS_PER_MINUTE) % MINUTES_PER_DAY


def day_start_ms(ts_ms: int) -> int:
    """Timestamp of UTC midnight on the day containing ts_ms."""
    return ts_ms - (ts_ms % MS_PER_DAY)


def utc_date(ts_ms: int) -> str:
    """UTC calendar date (YYYY-MM-DD) of a timestamp."""
    return datetime.fromtimestamp(ts_ms / 1000, tz=UTC).strftime("%Y-%m-%d")


def previous_date(date: str) -> str:
    """Calendar date before a YYYY-MM-DD date."""
    day = datetime.strptime(date, "%Y-%m-%d").replace(tzinfo=UTC)
    return (day - timedelta(days=1)).strftime("%Y-%m-%d")


def instant_ms(date: str, clock: str) -> int:
    """
    Convert a UTC date and wall-clock time to a timestamp.

    Args:
        date: YYYY-MM-DD.
        clock: HH:MM or HH:MM:SS.

    Returns:
        Milliseconds since the epoch.

    Raises:
        ValueError: If either part does not parse.
    """
    fmt = "%Y-%m-%d %H:%M:%S" if clock.count(":") == 2 else "%Y-%m-%d %H:%M"
    moment = datetime.strptime(f"{date} {clock}", fmt).replace(tzinfo=UTC)
    return int(moment.timestamp() * 1000)

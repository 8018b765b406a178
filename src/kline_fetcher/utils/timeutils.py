"""Time utilities for kline windows and Bybit interval codes."""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

MINUTE_MS = 60_000
DAY_MS = 24 * 60 * MINUTE_MS

MINUTE_INTERVALS = ("1", "3", "5", "15", "30", "60", "120", "240", "360", "720")

# "M" uses the shortest month so a chunk never spans more than one page
CALENDAR_INTERVALS_MS = {
    "D": DAY_MS,
    "W": 7 * DAY_MS,
    "M": 28 * DAY_MS,
}


def interval_to_millis(interval: str) -> int:
    """Return the duration of one candle for a Bybit interval code."""
    if interval in MINUTE_INTERVALS:
        return int(interval) * MINUTE_MS
    if interval in CALENDAR_INTERVALS_MS:
        return CALENDAR_INTERVALS_MS[interval]
    raise ValueError(
        f"Unsupported interval {interval!r}; expected one of "
        f"{', '.join(MINUTE_INTERVALS + tuple(CALENDAR_INTERVALS_MS))}"
    )


def now_ms() -> int:
    return int(time.time() * 1000)


def lookback_window(lookback_days: int, end_ms: Optional[int] = None) -> Tuple[int, int]:
    """Return (start, end) epoch ms covering `lookback_days` days up to `end_ms`."""
    end = now_ms() if end_ms is None else end_ms
    return end - lookback_days * DAY_MS, end


def ms_to_iso8601(ms: int) -> str:
    """Convert epoch milliseconds to an ISO8601 UTC string."""
    seconds, remainder = divmod(ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=remainder)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

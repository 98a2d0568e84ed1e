"""Date-key, clock and display helpers."""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta, timezone, tzinfo

from studycal.errors import InvalidMinutesInput

MS_PER_MINUTE = 60_000

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def date_key(value: date | datetime, tz: tzinfo | None = None) -> str:
    """Canonical YYYY-MM-DD key for a date or datetime.

    Aware datetimes are converted to *tz* (UTC when omitted) before the
    calendar date is taken. Naive datetimes are used as-is.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or timezone.utc)
        value = value.date()
    return value.isoformat()


def parse_date_key(key: str) -> date:
    """Parse a YYYY-MM-DD key. Raises ValueError on anything else."""
    if not isinstance(key, str) or not _DATE_KEY.match(key):
        raise ValueError(f"Invalid date key: {key!r}")
    return date.fromisoformat(key)


def week_start(d: date) -> date:
    """Most recent Sunday on or before *d*."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def month_grid(year: int, month: int) -> list[list[date]]:
    """Weeks (Sunday first) covering a month, padded with adjacent days."""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    return cal.monthdatescalendar(year, month)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def elapsed_minutes(start_ms: int, end_ms: int) -> int:
    """Whole minutes between two timestamps, rounding half up."""
    elapsed = end_ms - start_ms
    if elapsed <= 0:
        return 0
    return (elapsed + MS_PER_MINUTE // 2) // MS_PER_MINUTE


def parse_minutes_input(raw: int | str) -> int:
    """Parse manual minute input such as ``45`` or ``"45 min"``."""
    if isinstance(raw, bool):
        raise InvalidMinutesInput(f"Not a number of minutes: {raw!r}")
    if isinstance(raw, int):
        value = raw
    else:
        m = _INT_PREFIX.match(str(raw))
        if not m:
            raise InvalidMinutesInput(f"Not a number of minutes: {raw!r}")
        value = int(m.group(1))
    if value < 0:
        raise InvalidMinutesInput(f"Minutes must be non-negative: {value}")
    return value


def format_minutes(minutes: int) -> str:
    """Render minutes as ``45m``, ``2h`` or ``2h 5m``."""
    hours, mins = divmod(max(0, int(minutes)), 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_elapsed(seconds: int) -> str:
    """Render a running timer as HH:MM:SS."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    mins, secs = divmod(rest, 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}"

import re
from datetime import datetime, date, timedelta
from typing import Any

ISO_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class SystemClock:
    """Local-calendar clock used by request handlers."""

    def today(self) -> date:
        return date.today()


_SYSTEM_CLOCK = SystemClock()


def get_clock() -> SystemClock:
    return _SYSTEM_CLOCK


def normalize_calendar_day(value: Any) -> date | None:
    """Return the local calendar day for ``value`` or None when it cannot be read.

    A bare ``YYYY-MM-DD`` string is taken as that literal day. Datetimes are
    truncated to their local day; aware ones are first moved into the
    process-local zone. Numbers are epoch milliseconds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            try:
                value = value.astimezone()
            except (OverflowError, ValueError):
                return None
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000).date()
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None
    if ISO_DAY_RE.match(raw):
        try:
            return date.fromisoformat(raw)
        except ValueError:
            return None
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return normalize_calendar_day(parsed)


def start_of_week(d: date) -> date:
    """Return Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def is_same_month(a: date | None, b: date | None) -> bool:
    if a is None or b is None:
        return False
    return a.year == b.year and a.month == b.month


def window_start(today: date, days: int) -> date:
    """Inclusive lower bound for logs dated within the last ``days`` days."""
    return today - timedelta(days=days)

"""Day-key helpers.

A day key is a ``YYYY-MM-DD`` calendar date in the app's reference timezone.
It is handled as a plain ``datetime.date``, never as an instant, so adding or
subtracting days cannot drift across a DST change or the host's local zone.
"""

import re
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from bradbury.config import TIMEZONE
from bradbury.errors import InvalidDayKey

DAY_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_day_key(day_key: str) -> date:
    match = DAY_KEY_RE.match(str(day_key or "").strip())
    if match is None:
        raise InvalidDayKey(day_key)
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        raise InvalidDayKey(day_key) from None


def format_day_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def is_day_key(value: object) -> bool:
    try:
        parse_day_key(value)
    except InvalidDayKey:
        return False
    return True


def add_days(day_key: str, delta: int) -> str:
    return format_day_key(parse_day_key(day_key) + timedelta(days=delta))


def reference_today(timezone_name: str = TIMEZONE, now: datetime | None = None) -> str:
    """Today's day key in ``timezone_name``.

    Every streak and day-boundary computation takes its "today" from here (or
    from a value the caller already got from here).
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return format_day_key(now.astimezone(ZoneInfo(timezone_name)).date())


def is_future(day_key: str, today_key: str) -> bool:
    # Fixed-width keys compare correctly as strings
    return str(day_key) > str(today_key)


def clamp_to_today(day_key: str, today_key: str) -> str:
    return today_key if is_future(day_key, today_key) else day_key


def month_key(day_key: str) -> str:
    d = parse_day_key(day_key)
    return format_day_key(d.replace(day=1))

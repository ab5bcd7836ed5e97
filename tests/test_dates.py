from datetime import UTC, date, datetime

import pytest

from bradbury.dates import (
    add_days,
    clamp_to_today,
    format_day_key,
    is_day_key,
    is_future,
    month_key,
    parse_day_key,
    reference_today,
)
from bradbury.errors import InvalidDayKey


def test_parse_and_format_roundtrip():
    assert parse_day_key("2026-03-09") == date(2026, 3, 9)
    assert format_day_key(date(2026, 3, 9)) == "2026-03-09"


@pytest.mark.parametrize("raw", ["2026-3-9", "2026-02-30", "", None, "20260309"])
def test_parse_day_key_invalid(raw):
    with pytest.raises(InvalidDayKey):
        parse_day_key(raw)
    assert not is_day_key(raw)


def test_add_days_crosses_month_and_year():
    assert add_days("2026-03-01", -1) == "2026-02-28"
    assert add_days("2025-12-31", 1) == "2026-01-01"
    assert add_days("2024-02-28", 1) == "2024-02-29"


def test_add_days_across_dst_change():
    # US clocks moved forward on 2026-03-08
    assert add_days("2026-03-07", 1) == "2026-03-08"
    assert add_days("2026-03-09", -1) == "2026-03-08"


def test_reference_today_uses_timezone():
    now = datetime(2026, 1, 6, 3, 0, tzinfo=UTC)
    assert reference_today("America/New_York", now) == "2026-01-05"
    assert reference_today("UTC", now) == "2026-01-06"


def test_reference_today_naive_now_is_utc():
    assert reference_today("UTC", datetime(2026, 1, 6, 23, 30)) == "2026-01-06"


def test_is_future_and_clamp():
    assert is_future("2026-01-07", "2026-01-06")
    assert not is_future("2026-01-06", "2026-01-06")
    assert clamp_to_today("2026-02-01", "2026-01-06") == "2026-01-06"
    assert clamp_to_today("2026-01-01", "2026-01-06") == "2026-01-01"


def test_month_key():
    assert month_key("2026-01-17") == "2026-01-01"

"""Derived reading statistics: per-year scoping, per-category totals and the daily challenge streak.

Storage-agnostic: everything here works on an in-memory collection of entries
(``EntryRecord`` or any object with ``day_key``, ``category``, ``tags``,
``rating`` and ``word_count`` attributes).
"""

import re
from collections import defaultdict
from collections.abc import Iterable
from typing import Literal, Protocol

from bradbury.config import TIMEZONE
from bradbury.dates import add_days, is_day_key, month_key, parse_day_key, reference_today
from bradbury.errors import InvalidYear
from bradbury.normalize import CATEGORIES, YEAR_TAG_PREFIX, Category, try_category
from bradbury.schemas.stats import Badge, ChallengeStats, DayStatus, StatsReport, Totals, TypeAverages

ALL_YEARS = "All"

YEAR_RE = re.compile(r"^\d{4}$")
YEAR_TAG_RE = re.compile(rf"^{YEAR_TAG_PREFIX}(\d{{4}})$")

DayCompletion = Literal["none", "partial", "complete"]

BADGES = [
    Badge(key="streak_3", days=3, label="3-Day Streak", description="Three consecutive complete days."),
    Badge(key="streak_7", days=7, label="1-Week Streak", description="Seven consecutive complete days."),
    Badge(key="streak_14", days=14, label="2-Week Streak", description="Fourteen consecutive complete days."),
    Badge(key="streak_30", days=30, label="30-Day Streak", description="Thirty consecutive complete days."),
    Badge(key="streak_60", days=60, label="60-Day Streak", description="Sixty consecutive complete days."),
    Badge(key="streak_100", days=100, label="100-Day Streak", description="One hundred consecutive complete days."),
]


class EntryLike(Protocol):
    day_key: str
    category: str
    tags: list[str]
    rating: int | None
    word_count: int | None


def resolve_entry_year(entry: EntryLike) -> str | None:
    """A ``year:YYYY`` tag wins over the day key's year."""
    for tag in entry.tags or []:
        match = YEAR_TAG_RE.match(str(tag).strip())
        if match:
            return match.group(1)
    prefix = str(entry.day_key or "")[:4]
    return prefix if YEAR_RE.match(prefix) else None


def validate_scope_year(scope_year: str | int | None) -> str | None:
    """Return the requested 4-digit year, or None for every year."""
    if scope_year is None:
        return None
    s = str(scope_year).strip()
    if s.lower() == ALL_YEARS.lower():
        return None
    if not YEAR_RE.match(s):
        raise InvalidYear(scope_year)
    return s


def available_years(entries: Iterable[EntryLike]) -> list[str]:
    years = {y for y in (resolve_entry_year(e) for e in entries) if y}
    return sorted(years, reverse=True)


def filter_by_year(entries: Iterable[EntryLike], scope_year: str | int | None) -> list[EntryLike]:
    year = validate_scope_year(scope_year)
    valid = [e for e in entries if try_category(e.category) is not None]
    if year is None:
        return valid
    return [e for e in valid if resolve_entry_year(e) == year]


def filter_by_range(
    entries: Iterable[EntryLike], day_from: str | None = None, day_to: str | None = None
) -> list[EntryLike]:
    """Entries whose day key falls within ``day_from``..``day_to``, both ends inclusive."""
    if day_from:
        parse_day_key(day_from)
    if day_to:
        parse_day_key(day_to)
    return [
        e for e in entries
        if (not day_from or e.day_key >= day_from) and (not day_to or e.day_key <= day_to)
    ]


def _average(values: list[int]) -> float | None:
    return sum(values) / len(values) if values else None


def _words_and_ratings(entries: list[EntryLike]) -> tuple[list[int], list[int]]:
    words = [e.word_count for e in entries if e.word_count is not None]
    ratings = [e.rating for e in entries if e.rating is not None]
    return words, ratings


def _totals(entries: list[EntryLike]) -> Totals:
    words, ratings = _words_and_ratings(entries)
    return Totals(
        count=len(entries),
        total_words=sum(words),
        avg_rating=_average(ratings),
        rated_count=len(ratings),
    )


def _type_averages(entries: list[EntryLike]) -> TypeAverages:
    words, ratings = _words_and_ratings(entries)
    return TypeAverages(
        count=len(entries),
        total_words=sum(words),
        avg_rating=_average(ratings),
        rated_count=len(ratings),
        avg_words=_average(words),
        word_count=len(words),
    )


def categories_by_day(entries: Iterable[EntryLike]) -> dict[str, set[Category]]:
    days: dict[str, set[Category]] = defaultdict(set)
    for e in entries:
        category = try_category(e.category)
        if category is not None:
            days[str(e.day_key)].add(category)
    return days


def _completion(categories: set[Category]) -> DayCompletion:
    if not categories:
        return "none"
    if categories.issuperset(CATEGORIES):
        return "complete"
    return "partial"


def day_completion_status(entries: Iterable[EntryLike], day_key: str) -> DayCompletion:
    return _completion(categories_by_day(e for e in entries if e.day_key == day_key).get(day_key, set()))


def day_status(entries: Iterable[EntryLike], day_key: str) -> DayStatus:
    categories = categories_by_day(e for e in entries if e.day_key == day_key).get(day_key, set())
    return DayStatus(
        day_key=day_key,
        status=_completion(categories),
        categories=[str(c) for c in CATEGORIES if c in categories],
    )


def complete_days(entries: Iterable[EntryLike]) -> set[str]:
    return {
        day for day, cats in categories_by_day(entries).items()
        if _completion(cats) == "complete" and is_day_key(day)
    }


def current_streak(complete: set[str], today_key: str) -> int:
    """Consecutive complete days walking back from today, today included.

    An incomplete today means no current streak.
    """
    streak = 0
    cursor = today_key
    while cursor in complete:
        streak += 1
        cursor = add_days(cursor, -1)
    return streak


def month_statuses(entries: Iterable[EntryLike], day_key: str) -> list[DayStatus]:
    """Completion status for every day of the month containing ``day_key``."""
    entries = list(entries)
    cursor = month_key(day_key)
    month = cursor[:7]
    days = []
    while cursor[:7] == month:
        days.append(day_status(entries, cursor))
        cursor = add_days(cursor, 1)
    return days


def earned_badges(streak: int) -> list[Badge]:
    return [b for b in BADGES if streak >= b.days]


def compute_stats(
    entries: Iterable[EntryLike],
    scope_year: str | int | None = ALL_YEARS,
    today_key: str | None = None,
    timezone_name: str = TIMEZONE,
    day_from: str | None = None,
    day_to: str | None = None,
) -> StatsReport:
    """Aggregate an entry collection into a StatsReport.

    ``available_years`` always spans every entry; everything else is limited to
    ``scope_year`` unless it is "All". ``day_from``/``day_to`` further narrow
    the counts, totals and averages but not the streak. ``today_key`` anchors
    the streak and defaults to today in ``timezone_name``.
    """
    entries = list(entries)
    year = validate_scope_year(scope_year)
    if today_key is None:
        today_key = reference_today(timezone_name)
    parse_day_key(today_key)

    scoped = filter_by_year(entries, year)
    ranged = filter_by_range(scoped, day_from, day_to)
    by_type: dict[str, list[EntryLike]] = {str(c): [] for c in CATEGORIES}
    for e in ranged:
        by_type[str(try_category(e.category))].append(e)

    complete = complete_days(scoped)
    streak = current_streak(complete, today_key)

    return StatsReport(
        scope_year=year or ALL_YEARS,
        day_from=day_from or None,
        day_to=day_to or None,
        available_years=available_years(entries),
        counts_by_type={c: len(es) for c, es in by_type.items()},
        totals=_totals(ranged),
        per_type_averages={c: _type_averages(es) for c, es in by_type.items()},
        challenge=ChallengeStats(
            complete_day_count=len(complete),
            current_streak=streak,
            today_key=today_key,
        ),
        badges=earned_badges(streak),
    )

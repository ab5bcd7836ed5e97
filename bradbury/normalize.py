"""Field-level normalization shared by the local store, the sync engine and the server."""

import math
import re
from datetime import UTC, datetime
from enum import StrEnum

from bradbury.errors import InvalidCategory


class Category(StrEnum):
    ESSAY = "essay"
    STORY = "story"
    POEM = "poem"


CATEGORIES: tuple[Category, ...] = tuple(Category)

YEAR_TAG_PREFIX = "year:"
TYPE_TAG_PREFIX = "type:"

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def normalize_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_category(raw: object) -> Category:
    s = normalize_text(raw).lower()
    try:
        return Category(s)
    except ValueError:
        raise InvalidCategory(raw) from None


def try_category(raw: object) -> Category | None:
    try:
        return normalize_category(raw)
    except InvalidCategory:
        return None


def normalize_tags(raw: object) -> list[str]:
    """Trim, drop empties and de-duplicate case-insensitively.

    The first occurrence of a tag wins, both its position and its casing.
    A comma separated string is accepted as well as a list.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        return []

    out: list[str] = []
    seen: set[str] = set()
    for part in parts:
        tag = normalize_text(part)
        if not tag:
            continue
        k = tag.casefold()
        if k in seen:
            continue
        seen.add(k)
        out.append(tag)
    return out


def _parse_int(raw: object) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    # Leading integer, so "3 stars" is 3 and "12.9" is 12
    m = LEADING_INT_RE.match(str(raw))
    return int(m.group(1)) if m else None


def clamp_rating(raw: object) -> int:
    """Integer rating in [1, 5]; anything non-numeric becomes 5."""
    n = _parse_int(raw)
    if n is None:
        return 5
    return max(1, min(5, n))


def normalize_word_count(raw: object) -> int | None:
    n = _parse_int(raw)
    if n is None or n < 0:
        return None
    return n


def parse_timestamp(raw: object) -> datetime | None:
    """Timestamps arrive as datetimes, ISO strings or epoch milliseconds.

    Naive values are taken to be UTC.
    """
    if raw is None or isinstance(raw, bool) or raw == "":
        return None
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, (int, float)):
        try:
            ts = datetime.fromtimestamp(raw / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        s = str(raw).strip()
        if s.isdigit():
            return parse_timestamp(int(s))
        try:
            ts = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def auto_tags(day_key: str, category: Category) -> list[str]:
    return [f"{YEAR_TAG_PREFIX}{str(day_key)[:4]}", f"{TYPE_TAG_PREFIX}{category}"]


def user_tags(tags: list[str]) -> list[str]:
    """Tags without the automatic ``year:`` / ``type:`` markers."""
    return [t for t in tags if not t.startswith((YEAR_TAG_PREFIX, TYPE_TAG_PREFIX))]

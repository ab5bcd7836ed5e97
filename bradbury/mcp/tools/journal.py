from bradbury.config import TIMEZONE
from bradbury.dates import clamp_to_today, parse_day_key, reference_today
from bradbury.errors import ValidationError
from bradbury.local_store import LocalStore
from bradbury.mcp.tools.errors import error_response
from bradbury.normalize import user_tags
from bradbury.services.stats import ALL_YEARS, compute_stats, day_status, month_statuses


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


async def log_reading(
    local: LocalStore,
    category: str,
    title: str,
    author: str = "",
    url: str = "",
    notes: str = "",
    tags: list[str] | None = None,
    rating: int = 5,
    word_count: int | None = None,
    day_key: str | None = None,
) -> dict:
    today = reference_today(TIMEZONE)
    try:
        if day_key:
            parse_day_key(day_key)
            # Readings can't be logged ahead of time
            day_key = clamp_to_today(day_key.strip(), today)
        entry = await local.upsert_entry(
            day_key=day_key or today,
            category=category,
            title=title,
            author=author,
            url=url,
            notes=notes,
            tags=tags,
            rating=rating,
            word_count=word_count,
        )
    except ValidationError as e:
        return error_response(e)
    out = entry.to_json()
    out["userTags"] = user_tags(entry.tags)
    out["day"] = _dump(day_status(await local.list_entries(entry.day_key), entry.day_key))
    return out


async def list_day(local: LocalStore, day_key: str | None = None) -> dict:
    day_key = day_key or reference_today(TIMEZONE)
    entries = await local.list_entries(day_key)
    return {
        "day": _dump(day_status(entries, day_key)),
        "entries": [e.to_json() for e in entries],
    }


async def month_calendar(local: LocalStore, day_key: str | None = None) -> dict | list[dict]:
    try:
        days = month_statuses(await local.list_entries(), day_key or reference_today(TIMEZONE))
    except ValidationError as e:
        return error_response(e)
    return [_dump(d) for d in days]


async def reading_stats(
    local: LocalStore,
    year: str = ALL_YEARS,
    today: str | None = None,
    day_from: str | None = None,
    day_to: str | None = None,
) -> dict:
    try:
        report = compute_stats(
            await local.list_entries(), scope_year=year, today_key=today, day_from=day_from, day_to=day_to
        )
    except ValidationError as e:
        return error_response(e)
    return _dump(report)

"""Snapshot records exchanged between the local store, the sync engine and the server.

Attributes are snake_case; serialized form (``to_json``) uses the camelCase
field names the stores and the wire share (``dayKey``, ``wordCount``, ...).
"""

import logging
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from bradbury.normalize import (
    Category,
    clamp_rating,
    normalize_tags,
    normalize_text,
    normalize_word_count,
    parse_timestamp,
    try_category,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class RecordModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @field_validator("*")
    @classmethod
    def naive_as_utc(cls, value):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class EntryRecord(RecordModel):
    day_key: str
    category: Category
    title: str = Field(min_length=1)
    author: str = ""
    url: str = ""
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    rating: int | None = Field(5, ge=1, le=5)
    word_count: int | None = Field(None, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    user_id: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.day_key, str(self.category))


class TopicItemRecord(RecordModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    url: str = ""
    category: Category
    author: str = ""
    word_count: int | None = Field(None, ge=0)
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    finished: bool = False
    finished_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def sync_finished_at(self):
        # finished_at is set iff finished
        if self.finished and self.finished_at is None:
            self.finished_at = self.updated_at or self.created_at
        elif not self.finished:
            self.finished_at = None
        return self

    @property
    def freshness(self) -> datetime:
        return self.updated_at or self.created_at


class TopicRecord(RecordModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None
    items: list[TopicItemRecord] = Field(default_factory=list)
    user_id: str | None = None

    @property
    def freshness(self) -> datetime:
        return self.updated_at or self.created_at


def _ts(raw: object, default: datetime | None) -> datetime | None:
    parsed = parse_timestamp(raw)
    return parsed if parsed is not None else default


def normalize_entry(raw: object) -> EntryRecord | None:
    """Build an EntryRecord from a loosely shaped dict, or None if unusable.

    An entry needs a day key, a valid category and a title.
    """
    if not isinstance(raw, dict):
        return None
    day_key = normalize_text(raw.get("dayKey", raw.get("day_key")))
    category = try_category(raw.get("category"))
    title = normalize_text(raw.get("title"))
    if not day_key or category is None or not title:
        return None

    now = utcnow()
    created_at = _ts(raw.get("createdAt", raw.get("created_at")), now)
    word_count = raw.get("wordCount", raw.get("word_count"))
    return EntryRecord(
        day_key=day_key,
        category=category,
        title=title,
        author=normalize_text(raw.get("author")),
        url=normalize_text(raw.get("url")),
        notes=normalize_text(raw.get("notes")),
        tags=normalize_tags(raw.get("tags")),
        rating=clamp_rating(raw.get("rating")),
        word_count=normalize_word_count(word_count),
        created_at=created_at,
        updated_at=_ts(raw.get("updatedAt", raw.get("updated_at")), created_at),
        user_id=normalize_text(raw.get("userId", raw.get("user_id"))) or None,
    )


def normalize_topic_item(raw: object) -> TopicItemRecord | None:
    if not isinstance(raw, dict):
        return None
    item_id = normalize_text(raw.get("clientId") or raw.get("id"))
    title = normalize_text(raw.get("title"))
    # Older local data stored the category under "type"
    category = try_category(raw.get("category") or raw.get("type"))
    if not item_id or not title or category is None:
        return None

    finished = bool(raw.get("finished"))
    created_at = _ts(raw.get("createdAt", raw.get("created_at")), utcnow())
    return TopicItemRecord(
        id=item_id,
        title=title,
        url=normalize_text(raw.get("url")),
        category=category,
        author=normalize_text(raw.get("author")),
        word_count=normalize_word_count(raw.get("wordCount", raw.get("word_count"))),
        notes=normalize_text(raw.get("notes")),
        tags=normalize_tags(raw.get("tags")),
        finished=finished,
        finished_at=_ts(raw.get("finishedAt", raw.get("finished_at")), None) if finished else None,
        created_at=created_at,
        updated_at=_ts(raw.get("updatedAt", raw.get("updated_at")), None),
    )


def normalize_topic(raw: object) -> TopicRecord | None:
    """Build a TopicRecord, keeping only the items that are themselves usable.

    The stable id is the client id; server payloads carry it as ``clientId``.
    """
    if not isinstance(raw, dict):
        return None
    topic_id = normalize_text(raw.get("clientId") or raw.get("id"))
    name = normalize_text(raw.get("name"))
    if not topic_id or not name:
        return None

    items_raw = raw.get("items")
    items = []
    seen: set[str] = set()
    for it in items_raw if isinstance(items_raw, list) else []:
        item = normalize_topic_item(it)
        if item is None:
            logger.debug("Dropping unusable item in topic %s: %r", topic_id, it)
            continue
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)

    return TopicRecord(
        id=topic_id,
        name=name,
        created_at=_ts(raw.get("createdAt", raw.get("created_at")), utcnow()),
        updated_at=_ts(raw.get("updatedAt", raw.get("updated_at")), None),
        items=items,
        user_id=normalize_text(raw.get("userId", raw.get("user_id"))) or None,
    )


def _stamp(value: datetime | None) -> float:
    return value.timestamp() if value is not None else 0.0


def sort_topic_items(items: list[TopicItemRecord]) -> list[TopicItemRecord]:
    """Unfinished first, then most recently finished; ties by updated, then created."""
    return sorted(
        items,
        key=lambda it: (
            it.finished,
            -_stamp(it.finished_at),
            -_stamp(it.updated_at),
            -_stamp(it.created_at),
        ),
    )

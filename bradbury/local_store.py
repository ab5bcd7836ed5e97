"""On-device store for entries and curriculum.

Data is kept as whole-collection JSON snapshots in a small key-value table,
one key per collection, the way the mobile app keeps them. Every mutation
reads the collection, changes it in memory and writes it back in one go.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import String, Text, delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from bradbury.config import LOCAL_DATABASE_URL
from bradbury.dates import parse_day_key
from bradbury.errors import InvalidBackup, MissingField, TopicItemNotFound, TopicNotFound
from bradbury.id import make_client_id
from bradbury.normalize import (
    auto_tags,
    clamp_rating,
    normalize_category,
    normalize_tags,
    normalize_text,
    normalize_word_count,
)
from bradbury.schemas.records import (
    EntryRecord,
    TopicItemRecord,
    TopicRecord,
    normalize_entry,
    normalize_topic,
    sort_topic_items,
)

logger = logging.getLogger(__name__)

KEY_ENTRIES = "bradbury_entries_v1"
KEY_CURRICULUM = "bradbury_curriculum_v1"

BACKUP_PREFIX = "bradbury_"
BACKUP_VERSION = 1
IMPORT_MODES = ("merge", "replace")


class LocalBase(DeclarativeBase):
    pass


class KeyValue(LocalBase):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text)


def _safe_parse(raw: str | None, key: str) -> object:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Unreadable local data under %s, treating as empty: %s", key, e)
        return None


def _entries_payload(payload: object) -> list:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get("entries"), list):
        return payload["entries"]
    # Older per-profile layouts
    for legacy in ("byProfile", "profiles"):
        profiles = payload.get(legacy)
        if isinstance(profiles, dict):
            for value in profiles.values():
                if isinstance(value, dict) and isinstance(value.get("entries"), list):
                    return value["entries"]
                if isinstance(value, list):
                    return value
    return []


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


class LocalStore:
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str = LOCAL_DATABASE_URL) -> "LocalStore":
        database = make_url(url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return cls(create_async_engine(url, echo=False))

    async def open(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(LocalBase.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    # --- raw key-value access ---

    async def get_item(self, key: str) -> str | None:
        async with self.sessions() as session:
            row = (await session.execute(select(KeyValue).where(KeyValue.key == key))).scalar_one_or_none()
            return row.value if row is not None else None

    async def set_item(self, key: str, value: str) -> None:
        async with self.sessions() as session:
            row = await session.get(KeyValue, key)
            if row is None:
                session.add(KeyValue(key=key, value=value))
            else:
                row.value = value
            await session.commit()

    async def remove_item(self, key: str) -> None:
        async with self.sessions() as session:
            await session.execute(delete(KeyValue).where(KeyValue.key == key))
            await session.commit()

    async def list_keys(self, prefix: str = BACKUP_PREFIX) -> list[str]:
        async with self.sessions() as session:
            result = await session.execute(
                select(KeyValue.key).where(KeyValue.key.startswith(prefix, autoescape=True)).order_by(KeyValue.key)
            )
            return list(result.scalars().all())

    # --- backup ---

    async def export_data(self, now: datetime | None = None) -> dict:
        """Snapshot every ``bradbury_`` key as a JSON-ready backup document."""
        async with self.sessions() as session:
            result = await session.execute(
                select(KeyValue)
                .where(KeyValue.key.startswith(BACKUP_PREFIX, autoescape=True))
                .order_by(KeyValue.key)
            )
            rows = result.scalars().all()
        return {
            "exportedAt": _now(now).isoformat().replace("+00:00", "Z"),
            "prefix": BACKUP_PREFIX,
            "keys": [row.key for row in rows],
            "data": {row.key: row.value for row in rows},
            "version": BACKUP_VERSION,
        }

    async def import_data(self, payload: str | dict, mode: str = "merge") -> dict:
        """Restore a backup made by ``export_data``.

        ``merge`` overwrites the keys present in the backup and keeps the rest;
        ``replace`` clears every ``bradbury_`` key first. A null value in the
        backup removes that key.
        """
        if mode not in IMPORT_MODES:
            raise InvalidBackup(f"unknown mode {mode!r}")
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError:
                raise InvalidBackup("not valid JSON") from None
        if not isinstance(payload, dict):
            raise InvalidBackup("payload is not an object")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise InvalidBackup("missing data object")

        prefix = str(payload.get("prefix") or BACKUP_PREFIX)
        pairs = [
            (str(k), None if v is None else str(v))
            for k, v in data.items()
            if str(k).startswith(prefix)
        ]
        if not pairs:
            raise InvalidBackup(f"no keys with prefix {prefix!r}")

        to_set = [(k, v) for k, v in pairs if v is not None]
        to_remove = [k for k, v in pairs if v is None]
        async with self.sessions() as session:
            if mode == "replace":
                await session.execute(delete(KeyValue).where(KeyValue.key.startswith(BACKUP_PREFIX, autoescape=True)))
            if to_remove:
                await session.execute(delete(KeyValue).where(KeyValue.key.in_(to_remove)))
            for key, value in to_set:
                await session.merge(KeyValue(key=key, value=value))
            await session.commit()

        logger.info("Imported backup (%s): %d set, %d removed", mode, len(to_set), len(to_remove))
        return {"imported": len(pairs), "set": len(to_set), "removed": len(to_remove)}

    async def clear_data(self) -> int:
        """Delete every ``bradbury_`` key and return how many were removed."""
        keys = await self.list_keys()
        if keys:
            async with self.sessions() as session:
                await session.execute(delete(KeyValue).where(KeyValue.key.in_(keys)))
                await session.commit()
        logger.info("Cleared %d local keys", len(keys))
        return len(keys)

    # --- whole-collection primitives ---

    async def read_raw_entries(self) -> list:
        """Stored entry snapshots as-is, before any validation."""
        return _entries_payload(_safe_parse(await self.get_item(KEY_ENTRIES), KEY_ENTRIES))

    async def read_all_entries(self) -> list[EntryRecord]:
        raw = await self.read_raw_entries()
        by_key: dict[tuple[str, str], EntryRecord] = {}
        for item in raw:
            entry = normalize_entry(item)
            if entry is None:
                logger.warning("Dropping malformed local entry: %r", item)
                continue
            existing = by_key.get(entry.key)
            if existing is None or entry.updated_at > existing.updated_at:
                by_key[entry.key] = entry
        return list(by_key.values())

    async def write_all_entries(self, entries: list[EntryRecord]) -> int:
        await self.set_item(KEY_ENTRIES, json.dumps({"entries": [e.to_json() for e in entries]}))
        return len(entries)

    async def read_raw_curriculum(self) -> list:
        payload = _safe_parse(await self.get_item(KEY_CURRICULUM), KEY_CURRICULUM)
        raw = payload.get("topics") if isinstance(payload, dict) else payload
        return raw if isinstance(raw, list) else []

    async def read_curriculum(self) -> list[TopicRecord]:
        topics: list[TopicRecord] = []
        seen: set[str] = set()
        for item in await self.read_raw_curriculum():
            topic = normalize_topic(item)
            if topic is None or topic.id in seen:
                logger.warning("Dropping malformed or duplicate local topic: %r", item)
                continue
            seen.add(topic.id)
            topics.append(topic)
        return topics

    async def write_curriculum(self, topics: list[TopicRecord]) -> int:
        await self.set_item(KEY_CURRICULUM, json.dumps({"topics": [t.to_json() for t in topics]}))
        return len(topics)

    # --- entries ---

    async def list_entries(self, day_key: str | None = None) -> list[EntryRecord]:
        entries = await self.read_all_entries()
        if not day_key:
            return entries
        return [e for e in entries if e.day_key == day_key]

    async def upsert_entry(
        self,
        day_key: str,
        category: str,
        title: str,
        author: str = "",
        url: str = "",
        notes: str = "",
        tags: list[str] | str | None = None,
        rating: int | str | None = 5,
        word_count: int | str | None = None,
        now: datetime | None = None,
    ) -> EntryRecord:
        """Log a reading for one day and category, replacing any earlier log for that pair."""
        cat = normalize_category(category)
        day_key = normalize_text(day_key)
        if not day_key:
            raise MissingField("dayKey")
        parse_day_key(day_key)
        title = normalize_text(title)
        if not title:
            raise MissingField("title")

        ts = _now(now)
        entries = await self.read_all_entries()
        fields = {
            "title": title,
            "author": normalize_text(author),
            "url": normalize_text(url),
            "notes": normalize_text(notes),
            "tags": normalize_tags([*normalize_tags(tags), *auto_tags(day_key, cat)]),
            "rating": clamp_rating(rating),
            "word_count": normalize_word_count(word_count),
            "updated_at": ts,
        }

        idx = next((i for i, e in enumerate(entries) if e.key == (day_key, str(cat))), None)
        if idx is None:
            entry = EntryRecord(day_key=day_key, category=cat, created_at=ts, **fields)
            entries.append(entry)
        else:
            entry = entries[idx].model_copy(update=fields)
            entries[idx] = entry

        await self.write_all_entries(entries)
        return entry

    async def delete_entry(self, day_key: str, category: str) -> bool:
        cat = normalize_category(category)
        day_key = normalize_text(day_key)
        if not day_key:
            raise MissingField("dayKey")
        entries = await self.read_all_entries()
        remaining = [e for e in entries if e.key != (day_key, str(cat))]
        if len(remaining) == len(entries):
            return False
        await self.write_all_entries(remaining)
        return True

    # --- curriculum ---

    async def list_topics(self) -> list[TopicRecord]:
        topics = await self.read_curriculum()
        return sorted(topics, key=lambda t: t.created_at, reverse=True)

    async def get_topic(self, topic_id: str) -> TopicRecord | None:
        topics = await self.read_curriculum()
        return next((t for t in topics if t.id == topic_id), None)

    async def add_topic(self, name: str, now: datetime | None = None) -> TopicRecord:
        name = normalize_text(name)
        if not name:
            raise MissingField("name")
        ts = _now(now)
        topic = TopicRecord(id=make_client_id("t"), name=name, created_at=ts, updated_at=ts)
        topics = await self.read_curriculum()
        await self.write_curriculum([topic, *topics])
        return topic

    async def rename_topic(self, topic_id: str, name: str, now: datetime | None = None) -> TopicRecord:
        name = normalize_text(name)
        if not name:
            raise MissingField("name")
        topics = await self.read_curriculum()
        topic = next((t for t in topics if t.id == topic_id), None)
        if topic is None:
            raise TopicNotFound(topic_id)
        topic.name = name
        topic.updated_at = _now(now)
        await self.write_curriculum(topics)
        return topic

    async def delete_topic(self, topic_id: str) -> bool:
        topics = await self.read_curriculum()
        remaining = [t for t in topics if t.id != topic_id]
        if len(remaining) == len(topics):
            return False
        await self.write_curriculum(remaining)
        return True

    async def list_topic_items(self, topic_id: str) -> list[TopicItemRecord]:
        topic = await self.get_topic(topic_id)
        if topic is None:
            raise TopicNotFound(topic_id)
        return sort_topic_items(topic.items)

    async def add_topic_item(
        self,
        topic_id: str,
        title: str,
        category: str,
        url: str = "",
        author: str = "",
        word_count: int | str | None = None,
        notes: str = "",
        tags: list[str] | str | None = None,
        now: datetime | None = None,
    ) -> TopicItemRecord:
        title = normalize_text(title)
        if not title:
            raise MissingField("title")
        cat = normalize_category(category)

        topics = await self.read_curriculum()
        topic = next((t for t in topics if t.id == topic_id), None)
        if topic is None:
            raise TopicNotFound(topic_id)

        ts = _now(now)
        item = TopicItemRecord(
            id=make_client_id("i"),
            title=title,
            url=normalize_text(url),
            category=cat,
            author=normalize_text(author),
            word_count=normalize_word_count(word_count),
            notes=normalize_text(notes),
            tags=normalize_tags(tags),
            created_at=ts,
            updated_at=ts,
        )
        topic.items = [item, *topic.items]
        await self.write_curriculum(topics)
        return item

    async def toggle_topic_item_finished(
        self, topic_id: str, item_id: str, now: datetime | None = None
    ) -> TopicItemRecord:
        topics = await self.read_curriculum()
        topic = next((t for t in topics if t.id == topic_id), None)
        if topic is None:
            raise TopicNotFound(topic_id)
        item = next((i for i in topic.items if i.id == item_id), None)
        if item is None:
            raise TopicItemNotFound(item_id)

        ts = _now(now)
        item.finished = not item.finished
        item.finished_at = ts if item.finished else None
        item.updated_at = ts
        await self.write_curriculum(topics)
        return item

    async def delete_topic_item(self, topic_id: str, item_id: str) -> bool:
        """Remove an item; a missing topic or item is not an error."""
        topics = await self.read_curriculum()
        topic = next((t for t in topics if t.id == topic_id), None)
        if topic is None:
            return False
        remaining = [i for i in topic.items if i.id != item_id]
        if len(remaining) == len(topic.items):
            return False
        topic.items = remaining
        await self.write_curriculum(topics)
        return True

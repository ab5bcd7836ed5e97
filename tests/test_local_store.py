"""Tests for the on-device snapshot store."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from bradbury.errors import (
    InvalidBackup,
    InvalidCategory,
    InvalidDayKey,
    MissingField,
    TopicItemNotFound,
    TopicNotFound,
)
from bradbury.local_store import KEY_CURRICULUM, KEY_ENTRIES, LocalStore

T0 = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


# --- entries ---

@pytest.mark.asyncio
async def test_upsert_entry_replaces_same_day_and_category(local):
    first = await local.upsert_entry("2026-01-05", "essay", "Self-Reliance", now=T0)
    second = await local.upsert_entry("2026-01-05", "Essay", "Nature", rating=3, now=T0 + timedelta(hours=1))

    entries = await local.list_entries()
    assert len(entries) == 1
    assert entries[0].title == "Nature"
    assert entries[0].rating == 3
    assert second.created_at == first.created_at
    assert second.updated_at == T0 + timedelta(hours=1)


@pytest.mark.asyncio
async def test_upsert_entry_adds_auto_tags(local):
    entry = await local.upsert_entry("2026-01-05", "poem", "Ozymandias", tags="Shelley, classic")
    assert entry.tags == ["Shelley", "classic", "year:2026", "type:poem"]

    # Re-saving doesn't duplicate the automatic tags
    again = await local.upsert_entry("2026-01-05", "poem", "Ozymandias", tags=entry.tags)
    assert again.tags == entry.tags


@pytest.mark.asyncio
async def test_upsert_entry_validation(local):
    with pytest.raises(MissingField):
        await local.upsert_entry("2026-01-05", "poem", "   ")
    with pytest.raises(MissingField):
        await local.upsert_entry("", "poem", "x")
    with pytest.raises(InvalidDayKey):
        await local.upsert_entry("Jan 5", "poem", "x")
    with pytest.raises(InvalidCategory):
        await local.upsert_entry("2026-01-05", "novel", "x")
    assert await local.list_entries() == []


@pytest.mark.asyncio
async def test_list_entries_by_day(local):
    await local.upsert_entry("2026-01-05", "poem", "a")
    await local.upsert_entry("2026-01-05", "story", "b")
    await local.upsert_entry("2026-01-06", "poem", "c")
    assert {e.title for e in await local.list_entries("2026-01-05")} == {"a", "b"}
    assert len(await local.list_entries()) == 3


@pytest.mark.asyncio
async def test_delete_entry(local):
    await local.upsert_entry("2026-01-05", "poem", "a")
    assert await local.delete_entry("2026-01-05", "poem") is True
    assert await local.delete_entry("2026-01-05", "poem") is False
    assert await local.list_entries() == []


@pytest.mark.asyncio
async def test_read_all_entries_keeps_newest_duplicate(local):
    await local.set_item(KEY_ENTRIES, json.dumps({"entries": [
        {"dayKey": "2026-01-05", "category": "poem", "title": "old", "updatedAt": "2026-01-05T10:00:00Z"},
        {"dayKey": "2026-01-05", "category": "poem", "title": "new", "updatedAt": "2026-01-05T11:00:00Z"},
        {"dayKey": "2026-01-05", "category": "poem"},
    ]}))
    entries = await local.read_all_entries()
    assert [e.title for e in entries] == ["new"]


@pytest.mark.asyncio
async def test_read_all_entries_legacy_layouts(local):
    await local.set_item(KEY_ENTRIES, json.dumps(
        [{"dayKey": "2026-01-05", "category": "poem", "title": "bare list"}]
    ))
    assert [e.title for e in await local.read_all_entries()] == ["bare list"]

    await local.set_item(KEY_ENTRIES, json.dumps({"byProfile": {"me": {"entries": [
        {"dayKey": "2026-01-05", "category": "essay", "title": "profile"},
    ]}}}))
    assert [e.title for e in await local.read_all_entries()] == ["profile"]


@pytest.mark.asyncio
async def test_unreadable_snapshot_reads_as_empty(local):
    await local.set_item(KEY_ENTRIES, "{not json")
    await local.set_item(KEY_CURRICULUM, "[[[")
    assert await local.read_all_entries() == []
    assert await local.read_curriculum() == []


@pytest.mark.asyncio
async def test_raw_key_value_access(local):
    assert await local.get_item("k") is None
    await local.set_item("k", "v1")
    await local.set_item("k", "v2")
    assert await local.get_item("k") == "v2"
    await local.remove_item("k")
    assert await local.get_item("k") is None


# --- curriculum ---

@pytest.mark.asyncio
async def test_topic_lifecycle(local):
    older = await local.add_topic("Stoics", now=T0)
    newer = await local.add_topic("  Romantic poets ", now=T0 + timedelta(days=1))
    assert newer.name == "Romantic poets"
    assert older.id.startswith("t_")

    topics = await local.list_topics()
    assert [t.id for t in topics] == [newer.id, older.id]

    renamed = await local.rename_topic(older.id, "Stoicism", now=T0 + timedelta(days=2))
    assert renamed.name == "Stoicism"
    assert (await local.get_topic(older.id)).updated_at == T0 + timedelta(days=2)

    assert await local.delete_topic(older.id) is True
    assert await local.delete_topic(older.id) is False
    assert await local.get_topic(older.id) is None


@pytest.mark.asyncio
async def test_add_topic_requires_name(local):
    with pytest.raises(MissingField):
        await local.add_topic(" ")


@pytest.mark.asyncio
async def test_topic_items(local):
    topic = await local.add_topic("Stoics")
    first = await local.add_topic_item(topic.id, "Meditations", "essay", author="Marcus Aurelius", now=T0)
    second = await local.add_topic_item(topic.id, "On the Shortness of Life", "essay", now=T0 + timedelta(hours=1))

    items = await local.list_topic_items(topic.id)
    assert {it.id for it in items} == {first.id, second.id}
    assert first.id.startswith("i_")

    toggled = await local.toggle_topic_item_finished(topic.id, first.id, now=T0 + timedelta(hours=2))
    assert toggled.finished is True
    assert toggled.finished_at == T0 + timedelta(hours=2)
    assert toggled.updated_at == T0 + timedelta(hours=2)

    # Finished items sort after unfinished ones
    items = await local.list_topic_items(topic.id)
    assert [it.id for it in items] == [second.id, first.id]

    untoggled = await local.toggle_topic_item_finished(topic.id, first.id)
    assert untoggled.finished is False
    assert untoggled.finished_at is None


@pytest.mark.asyncio
async def test_topic_item_errors(local):
    with pytest.raises(TopicNotFound):
        await local.add_topic_item("t_missing", "x", "poem")
    topic = await local.add_topic("Stoics")
    with pytest.raises(InvalidCategory):
        await local.add_topic_item(topic.id, "x", "song")
    with pytest.raises(TopicItemNotFound):
        await local.toggle_topic_item_finished(topic.id, "i_missing")
    with pytest.raises(TopicNotFound):
        await local.list_topic_items("t_missing")


@pytest.mark.asyncio
async def test_delete_topic_item_is_idempotent(local):
    topic = await local.add_topic("Stoics")
    item = await local.add_topic_item(topic.id, "Meditations", "essay")
    assert await local.delete_topic_item(topic.id, item.id) is True
    assert await local.delete_topic_item(topic.id, item.id) is False
    assert await local.delete_topic_item("t_missing", item.id) is False
    assert await local.list_topic_items(topic.id) == []


@pytest.mark.asyncio
async def test_curriculum_snapshot_shape(local):
    topic = await local.add_topic("Stoics")
    await local.add_topic_item(topic.id, "Meditations", "essay")
    stored = json.loads(await local.get_item(KEY_CURRICULUM))
    assert stored["topics"][0]["id"] == topic.id
    assert stored["topics"][0]["items"][0]["title"] == "Meditations"
    assert "createdAt" in stored["topics"][0]


# --- backup ---

@pytest.mark.asyncio
async def test_export_data_covers_prefixed_keys_only(local):
    await local.upsert_entry("2026-01-05", "poem", "Ozymandias", now=T0)
    await local.add_topic("Stoics", now=T0)
    await local.set_item("other_app_key", "x")

    backup = await local.export_data(now=T0)
    assert backup["exportedAt"] == "2026-01-05T12:00:00Z"
    assert backup["prefix"] == "bradbury_"
    assert backup["version"] == 1
    assert backup["keys"] == [KEY_CURRICULUM, KEY_ENTRIES]
    assert set(backup["data"]) == {KEY_CURRICULUM, KEY_ENTRIES}
    assert json.loads(backup["data"][KEY_ENTRIES])["entries"][0]["title"] == "Ozymandias"


@pytest.mark.asyncio
async def test_export_then_import_into_fresh_store(local, tmp_path):
    await local.upsert_entry("2026-01-05", "poem", "Ozymandias", now=T0)
    backup = json.dumps(await local.export_data())

    other = LocalStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'restore.db'}")
    await other.open()
    try:
        result = await other.import_data(backup)
        assert result == {"imported": 1, "set": 1, "removed": 0}
        assert [e.title for e in await other.list_entries()] == ["Ozymandias"]
    finally:
        await other.close()


@pytest.mark.asyncio
async def test_import_merge_keeps_unlisted_keys(local):
    await local.set_item("bradbury_settings", "{}")
    await local.set_item(KEY_ENTRIES, "old")

    result = await local.import_data({"data": {KEY_ENTRIES: "new", "bradbury_gone": None, "foreign": "x"}})
    assert result == {"imported": 2, "set": 1, "removed": 1}
    assert await local.get_item(KEY_ENTRIES) == "new"
    assert await local.get_item("bradbury_settings") == "{}"
    assert await local.get_item("foreign") is None


@pytest.mark.asyncio
async def test_import_replace_clears_prefixed_keys_first(local):
    await local.set_item("bradbury_settings", "{}")
    await local.set_item("other_app_key", "keep")

    await local.import_data({"data": {KEY_ENTRIES: "new"}}, mode="replace")
    assert await local.list_keys() == [KEY_ENTRIES]
    assert await local.get_item("other_app_key") == "keep"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload,mode", [
    ("{not json", "merge"),
    ("[1, 2]", "merge"),
    ({"prefix": "bradbury_"}, "merge"),
    ({"data": {"foreign": "x"}}, "merge"),
    ({"data": {KEY_ENTRIES: "x"}}, "overwrite"),
])
async def test_import_rejects_bad_backups(local, payload, mode):
    await local.set_item(KEY_ENTRIES, "untouched")
    with pytest.raises(InvalidBackup):
        await local.import_data(payload, mode=mode)
    assert await local.get_item(KEY_ENTRIES) == "untouched"


@pytest.mark.asyncio
async def test_clear_data(local):
    await local.upsert_entry("2026-01-05", "poem", "Ozymandias")
    await local.add_topic("Stoics")
    await local.set_item("other_app_key", "keep")

    assert await local.clear_data() == 2
    assert await local.list_entries() == []
    assert await local.list_topics() == []
    assert await local.get_item("other_app_key") == "keep"
    assert await local.clear_data() == 0

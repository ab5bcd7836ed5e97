"""Tests for MCP tools. Each test gets an in-memory local store and, for the
sync tools, a SyncEngine whose remote talks to the test app, then calls the
tool function directly."""

import json

import pytest

from bradbury.mcp.tools.backup import clear_local_data, export_backup, import_backup
from bradbury.mcp.tools.curriculum import (
    add_reading_list_item,
    add_topic,
    list_curriculum,
    remove_item,
    toggle_item,
)
from bradbury.mcp.tools.journal import list_day, log_reading, month_calendar, reading_stats
from bradbury.mcp.tools.sync import hydrate_from_server, pull_latest, upload_local
from bradbury.services.sync import SyncEngine


@pytest.fixture
def engine(local, remote):
    return SyncEngine(local, remote, user_id="mcp-user")


# --- journal ---

@pytest.mark.asyncio
async def test_log_reading(local):
    result = await log_reading(local, category="poem", title="Ozymandias", tags=["Shelley"], day_key="2026-01-05")
    assert result["title"] == "Ozymandias"
    assert result["userTags"] == ["Shelley"]
    assert result["day"] == {"dayKey": "2026-01-05", "status": "partial", "categories": ["poem"]}


@pytest.mark.asyncio
async def test_log_reading_defaults_to_today(local):
    result = await log_reading(local, category="essay", title="Walking")
    assert result["dayKey"] == result["day"]["dayKey"]


@pytest.mark.asyncio
async def test_log_reading_invalid(local):
    result = await log_reading(local, category="novel", title="x", day_key="2026-01-05")
    assert result["error"] is True
    assert result["status"] == 400


@pytest.mark.asyncio
async def test_list_day_complete(local):
    for category in ("essay", "story", "poem"):
        await log_reading(local, category=category, title=category, day_key="2026-01-05")
    result = await list_day(local, day_key="2026-01-05")
    assert result["day"]["status"] == "complete"
    assert len(result["entries"]) == 3


@pytest.mark.asyncio
async def test_reading_stats(local):
    await log_reading(local, category="essay", title="a", rating=4, word_count=1000, day_key="2026-01-05")
    result = await reading_stats(local, year="2026", today="2026-01-05")
    assert result["countsByType"]["essay"] == 1
    assert result["perTypeAverages"]["essay"]["avgWords"] == 1000

    assert (await reading_stats(local, year="nope"))["error"] is True


# --- curriculum ---

@pytest.mark.asyncio
async def test_curriculum_tools(local):
    topic = await add_topic(local, name="Stoics")
    item = await add_reading_list_item(local, topic_id=topic["id"], title="Meditations", category="essay")
    assert item["finished"] is False

    toggled = await toggle_item(local, topic_id=topic["id"], item_id=item["id"])
    assert toggled["finished"] is True

    listing = await list_curriculum(local)
    assert listing[0]["name"] == "Stoics"
    assert listing[0]["finishedCount"] == 1

    assert (await remove_item(local, topic_id=topic["id"], item_id=item["id"]))["removed"] is True
    assert (await list_curriculum(local))[0]["items"] == []


@pytest.mark.asyncio
async def test_curriculum_tool_errors(local):
    assert (await add_topic(local, name=" "))["status"] == 400
    missing = await add_reading_list_item(local, topic_id="t_missing", title="x", category="poem")
    assert missing["status"] == 404
    topic = await add_topic(local, name="Stoics")
    assert (await toggle_item(local, topic_id=topic["id"], item_id="i_missing"))["status"] == 404


# --- sync ---

@pytest.mark.asyncio
async def test_upload_then_pull(local, remote, engine):
    await log_reading(local, category="poem", title="Ozymandias", day_key="2026-01-05")
    topic = await add_topic(local, name="Stoics")
    await add_reading_list_item(local, topic_id=topic["id"], title="Meditations", category="essay")

    uploaded = await upload_local(engine)
    assert uploaded["entries"]["uploaded"] == 1
    assert uploaded["curriculum"]["items_upserted"] == 1
    assert len(await remote.list_entries()) == 1

    pulled = await pull_latest(engine)
    assert pulled["entries"]["total"] == 1
    assert pulled["curriculum"]["total_topics"] == 1


@pytest.mark.asyncio
async def test_hydrate_requires_confirm(local, remote, engine):
    await remote.upsert_entry({"dayKey": "2026-01-05", "category": "essay", "title": "Server"})

    refused = await hydrate_from_server(engine)
    assert refused["error"] is True
    assert await local.list_entries() == []

    result = await hydrate_from_server(engine, confirm=True)
    assert result["entries_count"] == 1
    assert [e.title for e in await local.list_entries()] == ["Server"]


@pytest.mark.asyncio
async def test_log_reading_future_day_is_clamped_to_today(local):
    result = await log_reading(local, category="poem", title="x", day_key="2999-01-01")
    assert result["dayKey"] < "2999-01-01"
    assert result["dayKey"] == result["day"]["dayKey"]


@pytest.mark.asyncio
async def test_log_reading_rejects_malformed_day(local):
    result = await log_reading(local, category="poem", title="x", day_key="Jan 5")
    assert result["status"] == 400


@pytest.mark.asyncio
async def test_month_calendar(local):
    for category in ("essay", "story", "poem"):
        await log_reading(local, category=category, title=category, day_key="2026-02-03")
    await log_reading(local, category="poem", title="p", day_key="2026-02-04")

    days = await month_calendar(local, day_key="2026-02-17")
    assert len(days) == 28
    assert days[0]["dayKey"] == "2026-02-01"
    assert days[2]["status"] == "complete"
    assert days[3]["status"] == "partial"
    assert days[4]["status"] == "none"


# --- backup ---

@pytest.mark.asyncio
async def test_export_and_import_backup(local):
    await log_reading(local, category="poem", title="Ozymandias", day_key="2026-01-05")
    backup = await export_backup(local)
    assert backup["keys"] == ["bradbury_entries_v1"]

    cleared = await clear_local_data(local, confirm=True)
    assert cleared == {"deleted": 1}
    assert (await list_day(local, day_key="2026-01-05"))["entries"] == []

    result = await import_backup(local, backup=json.dumps(backup))
    assert result == {"imported": 1, "set": 1, "removed": 0}
    assert [e["title"] for e in (await list_day(local, day_key="2026-01-05"))["entries"]] == ["Ozymandias"]


@pytest.mark.asyncio
async def test_destructive_backup_tools_need_confirm(local):
    await log_reading(local, category="poem", title="Ozymandias", day_key="2026-01-05")

    result = await clear_local_data(local)
    assert result["error"] is True
    assert result["status"] == 400

    result = await import_backup(local, backup={"data": {"bradbury_x": "1"}}, mode="replace")
    assert result["error"] is True
    assert len((await list_day(local, day_key="2026-01-05"))["entries"]) == 1


@pytest.mark.asyncio
async def test_import_backup_bad_payload(local):
    result = await import_backup(local, backup="not json")
    assert result["error"] is True
    assert result["status"] == 400
    assert "invalid_backup" in result["detail"]

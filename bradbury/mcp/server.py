from fastmcp import FastMCP

from bradbury.local_store import LocalStore
from bradbury.mcp.tools.backup import (
    clear_local_data as _clear_local_data,
    export_backup as _export_backup,
    import_backup as _import_backup,
)
from bradbury.mcp.tools.curriculum import (
    add_reading_list_item as _add_reading_list_item,
    add_topic as _add_topic,
    list_curriculum as _list_curriculum,
    remove_item as _remove_item,
    toggle_item as _toggle_item,
)
from bradbury.mcp.tools.journal import (
    list_day as _list_day,
    log_reading as _log_reading,
    month_calendar as _month_calendar,
    reading_stats as _reading_stats,
)
from bradbury.mcp.tools.sync import (
    hydrate_from_server as _hydrate_from_server,
    pull_latest as _pull_latest,
    upload_local as _upload_local,
)
from bradbury.services.sync import SyncEngine


def create_mcp_server(local: LocalStore, engine: SyncEngine) -> FastMCP:
    mcp = FastMCP(
        name="bradbury",
        instructions=(
            "Bradbury tracks a daily reading habit: one essay, one story and one "
            "poem per day. Days are YYYY-MM-DD keys. Log readings and manage the "
            "reading-list curriculum locally, then sync with the server."
        ),
    )

    @mcp.tool()
    async def log_reading(
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
        """Log today's (or day_key's) essay, story or poem. Logging the same
        category twice on one day replaces the earlier entry."""
        return await _log_reading(
            local,
            category=category,
            title=title,
            author=author,
            url=url,
            notes=notes,
            tags=tags,
            rating=rating,
            word_count=word_count,
            day_key=day_key,
        )

    @mcp.tool()
    async def day_status(day_key: str | None = None) -> dict:
        """Show what was read on a day and whether the day is complete."""
        return await _list_day(local, day_key=day_key)

    @mcp.tool()
    async def month_calendar(day_key: str | None = None) -> dict | list[dict]:
        """Day-by-day completion for the month containing day_key (default: this month)."""
        return await _month_calendar(local, day_key=day_key)

    @mcp.tool()
    async def reading_stats(
        year: str = "All",
        today: str | None = None,
        day_from: str | None = None,
        day_to: str | None = None,
    ) -> dict:
        """Per-category counts, averages, the current streak and earned badges.
        year is a 4-digit year or 'All'; day_from and day_to (YYYY-MM-DD) narrow the totals."""
        return await _reading_stats(local, year=year, today=today, day_from=day_from, day_to=day_to)

    @mcp.tool()
    async def list_curriculum() -> list[dict]:
        """List reading-list topics with their items, unfinished first."""
        return await _list_curriculum(local)

    @mcp.tool()
    async def add_topic(name: str) -> dict:
        """Create a reading-list topic."""
        return await _add_topic(local, name=name)

    @mcp.tool()
    async def add_reading_list_item(
        topic_id: str,
        title: str,
        category: str,
        url: str = "",
        author: str = "",
        word_count: int | None = None,
        notes: str = "",
        tags: list[str] | None = None,
    ) -> dict:
        """Add an essay, story or poem to a topic's reading list."""
        return await _add_reading_list_item(
            local,
            topic_id=topic_id,
            title=title,
            category=category,
            url=url,
            author=author,
            word_count=word_count,
            notes=notes,
            tags=tags,
        )

    @mcp.tool()
    async def toggle_item(topic_id: str, item_id: str) -> dict:
        """Mark a reading-list item finished, or unfinished again."""
        return await _toggle_item(local, topic_id=topic_id, item_id=item_id)

    @mcp.tool()
    async def remove_item(topic_id: str, item_id: str) -> dict:
        """Remove an item from a topic's reading list."""
        return await _remove_item(local, topic_id=topic_id, item_id=item_id)

    @mcp.tool()
    async def upload_local(limit: int | None = None, limit_topics: int | None = None) -> dict:
        """Upload local entries and curriculum to the server. Safe to repeat."""
        return await _upload_local(engine, limit=limit, limit_topics=limit_topics)

    @mcp.tool()
    async def pull_latest() -> dict:
        """Merge the server's latest entries and curriculum into local data.
        Newer server records win; local-only records are kept."""
        return await _pull_latest(engine)

    @mcp.tool()
    async def hydrate_from_server(confirm: bool = False) -> dict:
        """Replace ALL local data with the server's copy. Requires confirm=true."""
        return await _hydrate_from_server(engine, confirm=confirm)

    @mcp.tool()
    async def export_backup() -> dict:
        """Export all local Bradbury data as a backup document."""
        return await _export_backup(local)

    @mcp.tool()
    async def import_backup(backup: str, mode: str = "merge", confirm: bool = False) -> dict:
        """Restore a backup produced by export_backup (JSON text).
        mode 'merge' keeps keys the backup lacks; 'replace' drops them first and requires confirm=true."""
        return await _import_backup(local, backup=backup, mode=mode, confirm=confirm)

    @mcp.tool()
    async def clear_local_data(confirm: bool = False) -> dict:
        """Delete ALL local Bradbury data. Requires confirm=true."""
        return await _clear_local_data(local, confirm=confirm)

    return mcp

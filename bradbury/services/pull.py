"""Pull the server's latest data and merge it into the local collections."""

import asyncio
import logging
from dataclasses import dataclass, field

from bradbury.local_store import LocalStore
from bradbury.remote import RemoteClient
from bradbury.schemas.records import normalize_entry, normalize_topic
from bradbury.services.merge import (
    CurriculumMergeResult,
    EntryMergeResult,
    merge_curriculum,
    merge_entries,
)
from bradbury.services.progress import ProgressCallback, is_cancelled, report

logger = logging.getLogger(__name__)


@dataclass
class PullResult:
    entries: EntryMergeResult = field(default_factory=EntryMergeResult)
    curriculum: CurriculumMergeResult = field(default_factory=CurriculumMergeResult)
    cancelled: bool = False


async def pull_latest_merge(
    local: LocalStore,
    remote: RemoteClient,
    on_progress: ProgressCallback | None = None,
    cancel: asyncio.Event | None = None,
) -> PullResult:
    """Merge server entries and curriculum into local storage.

    Entries are fetched and committed before the curriculum is fetched, so a
    cancellation between the two keeps the entry merge.
    """
    result = PullResult()

    if is_cancelled(cancel):
        result.cancelled = True
        return result
    raw_entries = await remote.list_entries()
    server_entries = [e for e in map(normalize_entry, raw_entries) if e is not None]
    if len(server_entries) != len(raw_entries):
        logger.warning("Ignored %d unusable server entries", len(raw_entries) - len(server_entries))

    merged, result.entries = merge_entries(await local.read_all_entries(), server_entries)
    if result.entries.added or result.entries.updated:
        await local.write_all_entries(merged)
    report(on_progress, result)

    if is_cancelled(cancel):
        result.cancelled = True
        return result
    raw_topics = await remote.list_topics()
    server_topics = [t for t in map(normalize_topic, raw_topics) if t is not None]
    if len(server_topics) != len(raw_topics):
        logger.warning("Ignored %d unusable server topics", len(raw_topics) - len(server_topics))

    merged_topics, result.curriculum = merge_curriculum(await local.read_curriculum(), server_topics)
    c = result.curriculum
    if c.topics_added or c.topics_updated or c.items_added or c.items_updated:
        await local.write_curriculum(merged_topics)
    report(on_progress, result)

    logger.info(
        "Pulled entries (+%d, ~%d) and topics (+%d, ~%d; items +%d, ~%d)",
        result.entries.added, result.entries.updated,
        c.topics_added, c.topics_updated, c.items_added, c.items_updated,
    )
    return result

"""Replace the local collections with the server's copy."""

import asyncio
import logging
from dataclasses import dataclass

from bradbury.errors import ConfirmationRequired
from bradbury.local_store import LocalStore
from bradbury.remote import RemoteClient
from bradbury.schemas.records import EntryRecord, TopicRecord, normalize_entry, normalize_topic
from bradbury.services.progress import ProgressCallback, is_cancelled, report

logger = logging.getLogger(__name__)


@dataclass
class HydrateResult:
    entries_count: int = 0
    topics_count: int = 0
    stage: str = "pending"
    cancelled: bool = False


def _usable_entries(raw: list[dict]) -> list[EntryRecord]:
    by_key: dict[tuple[str, str], EntryRecord] = {}
    for item in raw:
        entry = normalize_entry(item)
        if entry is None:
            logger.warning("Discarding unusable server entry: %r", item)
            continue
        by_key[entry.key] = entry
    return list(by_key.values())


def _usable_topics(raw: list[dict]) -> list[TopicRecord]:
    topics: dict[str, TopicRecord] = {}
    for item in raw:
        topic = normalize_topic(item)
        if topic is None:
            logger.warning("Discarding unusable server topic: %r", item)
            continue
        topics[topic.id] = topic
    return list(topics.values())


async def hydrate_from_server(
    local: LocalStore,
    remote: RemoteClient,
    confirm: bool = False,
    on_progress: ProgressCallback | None = None,
    cancel: asyncio.Event | None = None,
) -> HydrateResult:
    """Overwrite local entries and curriculum with the server snapshot.

    Destructive, so it refuses to run without ``confirm=True``. Both
    collections are fetched before anything is written; a failed fetch or a
    cancellation leaves local data as it was.
    """
    if not confirm:
        raise ConfirmationRequired("hydrate replaces all local data; pass confirm=True")

    result = HydrateResult()
    if is_cancelled(cancel):
        result.cancelled = True
        return result
    raw_entries = await remote.list_entries()

    if is_cancelled(cancel):
        result.cancelled = True
        return result
    raw_topics = await remote.list_topics()

    entries = _usable_entries(raw_entries)
    topics = _usable_topics(raw_topics)
    result.stage = "fetched"
    report(on_progress, result)

    if is_cancelled(cancel):
        result.cancelled = True
        return result

    result.entries_count = await local.write_all_entries(entries)
    result.stage = "entries"
    report(on_progress, result)

    result.topics_count = await local.write_curriculum(topics)
    result.stage = "curriculum"
    report(on_progress, result)

    logger.info("Hydrated %d entries and %d topics from server", result.entries_count, result.topics_count)
    return result

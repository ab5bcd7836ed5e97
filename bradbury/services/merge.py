"""Last-writer-wins merge of server snapshots into local collections.

Pure functions: nothing here touches storage or the network. A server record
replaces its local counterpart only when it is strictly newer; records that
exist only locally are always kept.
"""

from dataclasses import dataclass
from datetime import datetime

from bradbury.schemas.records import EntryRecord, TopicRecord


@dataclass
class EntryMergeResult:
    added: int = 0
    updated: int = 0
    total: int = 0


@dataclass
class CurriculumMergeResult:
    topics_added: int = 0
    topics_updated: int = 0
    items_added: int = 0
    items_updated: int = 0
    total_topics: int = 0


def server_wins(local_ts: datetime, server_ts: datetime) -> bool:
    # Ties keep the local copy
    return server_ts > local_ts


def merge_entries(
    local: list[EntryRecord], server: list[EntryRecord]
) -> tuple[list[EntryRecord], EntryMergeResult]:
    merged = {e.key: e for e in local}
    result = EntryMergeResult()

    for incoming in server:
        existing = merged.get(incoming.key)
        if existing is None:
            merged[incoming.key] = incoming
            result.added += 1
        elif server_wins(existing.updated_at, incoming.updated_at):
            merged[incoming.key] = incoming.model_copy(update={"created_at": existing.created_at})
            result.updated += 1

    result.total = len(merged)
    return list(merged.values()), result


def merge_curriculum(
    local: list[TopicRecord], server: list[TopicRecord]
) -> tuple[list[TopicRecord], CurriculumMergeResult]:
    """Merge topics by id, then each topic's items by id."""
    merged = {t.id: t for t in local}
    result = CurriculumMergeResult()

    for incoming in server:
        existing = merged.get(incoming.id)
        if existing is None:
            merged[incoming.id] = incoming
            result.topics_added += 1
            result.items_added += len(incoming.items)
            continue

        topic = existing.model_copy(deep=True)
        if server_wins(existing.freshness, incoming.freshness):
            topic.name = incoming.name
            topic.updated_at = incoming.freshness
            result.topics_updated += 1

        items = {i.id: i for i in topic.items}
        for item in incoming.items:
            current = items.get(item.id)
            if current is None:
                items[item.id] = item
                result.items_added += 1
            elif server_wins(current.freshness, item.freshness):
                items[item.id] = item
                result.items_updated += 1
        topic.items = list(items.values())
        merged[incoming.id] = topic

    result.total_topics = len(merged)
    return list(merged.values()), result

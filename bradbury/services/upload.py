"""Push local entries and curriculum to the server.

Uploads are item-by-item and best effort: an unusable record is skipped, a
failed request is counted and logged, and the batch moves on. The server
upserts by natural key, so re-running an upload never creates duplicates.
"""

import asyncio
import logging
from dataclasses import dataclass

from httpx import HTTPError

from bradbury.errors import RemoteError
from bradbury.local_store import LocalStore
from bradbury.normalize import (
    clamp_rating,
    normalize_tags,
    normalize_text,
    normalize_word_count,
    try_category,
)
from bradbury.remote import RemoteClient
from bradbury.services.progress import ProgressCallback, is_cancelled, report

logger = logging.getLogger(__name__)

UPLOAD_ERRORS = (RemoteError, HTTPError)


@dataclass
class EntriesUploadResult:
    total: int = 0
    uploaded: int = 0
    skipped: int = 0
    failed: int = 0
    first_error: str | None = None
    cancelled: bool = False

    def record_failure(self, error: Exception) -> None:
        self.failed += 1
        if self.first_error is None:
            self.first_error = str(error)


@dataclass
class CurriculumUploadResult:
    total_topics: int = 0
    topics_upserted: int = 0
    items_upserted: int = 0
    skipped: int = 0
    failed: int = 0
    first_error: str | None = None
    cancelled: bool = False

    def record_failure(self, error: Exception) -> None:
        self.failed += 1
        if self.first_error is None:
            self.first_error = str(error)


def _get(raw: dict, camel: str, snake: str):
    return raw.get(camel, raw.get(snake))


def entry_payload(raw: object) -> dict | None:
    """Request body for one stored entry, or None if it can't be uploaded."""
    if not isinstance(raw, dict):
        return None
    day_key = normalize_text(_get(raw, "dayKey", "day_key"))
    category = try_category(raw.get("category"))
    title = normalize_text(raw.get("title"))
    if not day_key or category is None or not title:
        return None
    return {
        "dayKey": day_key,
        "category": str(category),
        "title": title,
        "author": normalize_text(raw.get("author")),
        "url": normalize_text(raw.get("url")),
        "notes": normalize_text(raw.get("notes")),
        "tags": normalize_tags(raw.get("tags")),
        "rating": clamp_rating(raw.get("rating")),
        "wordCount": normalize_word_count(_get(raw, "wordCount", "word_count")),
    }


def topic_item_payload(raw: object) -> dict | None:
    if not isinstance(raw, dict):
        return None
    client_id = normalize_text(raw.get("clientId") or raw.get("id"))
    title = normalize_text(raw.get("title"))
    category = try_category(raw.get("category") or raw.get("type"))
    if not client_id or not title or category is None:
        return None
    return {
        "clientId": client_id,
        "title": title,
        "url": normalize_text(raw.get("url")),
        "category": str(category),
        "author": normalize_text(raw.get("author")),
        "wordCount": normalize_word_count(_get(raw, "wordCount", "word_count")),
        "notes": normalize_text(raw.get("notes")),
        "tags": normalize_tags(raw.get("tags")),
        "finished": bool(raw.get("finished")),
    }


async def upload_local_entries(
    local: LocalStore,
    remote: RemoteClient,
    limit: int | None = None,
    on_progress: ProgressCallback | None = None,
    cancel: asyncio.Event | None = None,
) -> EntriesUploadResult:
    raw_entries = await local.read_raw_entries()
    if limit is not None:
        raw_entries = raw_entries[:limit]

    result = EntriesUploadResult(total=len(raw_entries))
    for raw in raw_entries:
        payload = entry_payload(raw)
        if payload is None:
            logger.debug("Skipping local entry that cannot be uploaded: %r", raw)
            result.skipped += 1
            report(on_progress, result)
            continue
        if is_cancelled(cancel):
            result.cancelled = True
            break
        try:
            await remote.upsert_entry(payload)
            result.uploaded += 1
        except UPLOAD_ERRORS as e:
            logger.error("Failed to upload entry %s/%s: %s", payload["dayKey"], payload["category"], e)
            result.record_failure(e)
        report(on_progress, result)

    logger.info(
        "Entries upload: %d uploaded, %d skipped, %d failed of %d",
        result.uploaded, result.skipped, result.failed, result.total,
    )
    return result


async def upload_local_curriculum(
    local: LocalStore,
    remote: RemoteClient,
    limit_topics: int | None = None,
    on_progress: ProgressCallback | None = None,
    cancel: asyncio.Event | None = None,
) -> CurriculumUploadResult:
    """Upsert each topic, then its items under the id the server answers with.

    A topic whose upsert fails is counted once and its items are not attempted.
    """
    raw_topics = await local.read_raw_curriculum()
    if limit_topics is not None:
        raw_topics = raw_topics[:limit_topics]

    result = CurriculumUploadResult(total_topics=len(raw_topics))
    for raw in raw_topics:
        topic_id = normalize_text(raw.get("clientId") or raw.get("id")) if isinstance(raw, dict) else ""
        name = normalize_text(raw.get("name")) if isinstance(raw, dict) else ""
        if not topic_id or not name:
            logger.debug("Skipping local topic that cannot be uploaded: %r", raw)
            result.skipped += 1
            report(on_progress, result)
            continue
        if is_cancelled(cancel):
            result.cancelled = True
            break

        try:
            created = await remote.create_topic(name, topic_id)
            server_topic_id = normalize_text(created.get("id") or created.get("clientId"))
            if not server_topic_id:
                raise RemoteError("topic_upsert_missing_id")
        except UPLOAD_ERRORS as e:
            logger.error("Failed to upload topic %s: %s", topic_id, e)
            result.record_failure(e)
            report(on_progress, result)
            continue
        result.topics_upserted += 1
        report(on_progress, result)

        items = raw.get("items")
        for raw_item in items if isinstance(items, list) else []:
            payload = topic_item_payload(raw_item)
            if payload is None:
                logger.debug("Skipping item in topic %s that cannot be uploaded: %r", topic_id, raw_item)
                result.skipped += 1
                report(on_progress, result)
                continue
            if is_cancelled(cancel):
                result.cancelled = True
                break
            try:
                await remote.add_topic_item(server_topic_id, payload)
                result.items_upserted += 1
            except UPLOAD_ERRORS as e:
                logger.error("Failed to upload item %s in topic %s: %s", payload["clientId"], topic_id, e)
                result.record_failure(e)
            report(on_progress, result)

        if result.cancelled:
            break

    logger.info(
        "Curriculum upload: %d topics, %d items, %d skipped, %d failed",
        result.topics_upserted, result.items_upserted, result.skipped, result.failed,
    )
    return result

"""One entry point for every sync operation on behalf of a single user.

Only one sync operation may run per user at a time; a second one is refused
with SyncInProgress rather than queued behind the first.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from bradbury.errors import SyncInProgress
from bradbury.local_store import LocalStore
from bradbury.remote import RemoteClient
from bradbury.services.hydrate import HydrateResult, hydrate_from_server
from bradbury.services.progress import ProgressCallback
from bradbury.services.pull import PullResult, pull_latest_merge
from bradbury.services.upload import (
    CurriculumUploadResult,
    EntriesUploadResult,
    upload_local_curriculum,
    upload_local_entries,
)

logger = logging.getLogger(__name__)

_locks: dict[str, asyncio.Lock] = {}


@asynccontextmanager
async def user_sync_lock(user_id: str) -> AsyncIterator[None]:
    lock = _locks.setdefault(user_id, asyncio.Lock())
    if lock.locked():
        logger.warning("Refusing concurrent sync for user %s", user_id)
        raise SyncInProgress(user_id)
    try:
        async with lock:
            yield
    finally:
        # Callers never queue on these locks
        if not lock.locked() and _locks.get(user_id) is lock:
            del _locks[user_id]


class SyncEngine:
    def __init__(self, local: LocalStore, remote: RemoteClient, user_id: str = "default") -> None:
        self.local = local
        self.remote = remote
        self.user_id = user_id

    async def hydrate(
        self,
        confirm: bool = False,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> HydrateResult:
        async with user_sync_lock(self.user_id):
            return await hydrate_from_server(
                self.local, self.remote, confirm=confirm, on_progress=on_progress, cancel=cancel
            )

    async def upload_entries(
        self,
        limit: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> EntriesUploadResult:
        async with user_sync_lock(self.user_id):
            return await upload_local_entries(
                self.local, self.remote, limit=limit, on_progress=on_progress, cancel=cancel
            )

    async def upload_curriculum(
        self,
        limit_topics: int | None = None,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CurriculumUploadResult:
        async with user_sync_lock(self.user_id):
            return await upload_local_curriculum(
                self.local, self.remote, limit_topics=limit_topics, on_progress=on_progress, cancel=cancel
            )

    async def pull(
        self,
        on_progress: ProgressCallback | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PullResult:
        async with user_sync_lock(self.user_id):
            return await pull_latest_merge(self.local, self.remote, on_progress=on_progress, cancel=cancel)

    async def toggle_remote_item(self, topic_id: str, item_id: str) -> dict:
        return await self.remote.toggle_topic_item_finished(topic_id, item_id)

    async def delete_remote_item(self, topic_id: str, item_id: str) -> dict:
        return await self.remote.delete_topic_item(topic_id, item_id)

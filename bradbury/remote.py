"""Transport to the Bradbury server.

No business logic lives here: each method is one request. List responses are
coerced into a plain list whether the server answers with a bare array or an
envelope, so callers never branch on response shape.
"""

import logging
from urllib.parse import quote

from httpx import AsyncClient, Response

from bradbury.config import API_TOKEN, API_URL, HTTP_TIMEOUT
from bradbury.errors import RemoteError

logger = logging.getLogger(__name__)


def _seg(value: str) -> str:
    return quote(str(value), safe="")


def as_list(payload: object, *keys: str) -> list[dict]:
    """Canonical list from a bare array or a ``{key: [...]}`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


class RemoteClient:
    """Thin wrapper around httpx.AsyncClient for the entries and topics endpoints."""

    def __init__(self, http: AsyncClient, token: str | None = None) -> None:
        self.http = http
        self.token = token

    @classmethod
    def from_config(cls) -> "RemoteClient":
        return cls(AsyncClient(base_url=API_URL, timeout=HTTP_TIMEOUT), token=API_TOKEN)

    async def aclose(self) -> None:
        await self.http.aclose()

    def _headers(self) -> dict:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs) -> dict | list:
        resp = await self.http.request(method, path, headers=self._headers(), **kwargs)
        return self._handle(resp)

    def _handle(self, resp: Response) -> dict | list:
        if resp.status_code == 204:
            return {"ok": True}
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            message = None
            if isinstance(data, dict):
                message = data.get("detail") or data.get("error")
            raise RemoteError(str(message or f"http_{resp.status_code}"), status=resp.status_code, data=data)
        return data if data is not None else {}

    async def health(self) -> dict:
        return await self._request("GET", "/health")

    async def list_entries(self, day_key: str | None = None) -> list[dict]:
        params = {"dayKey": day_key} if day_key else None
        payload = await self._request("GET", "/api/entries", params=params)
        return as_list(payload, "entries", "items")

    async def upsert_entry(self, payload: dict) -> dict:
        data = await self._request("POST", "/api/entries/upsert", json=payload)
        return data.get("entry", data)

    async def delete_entry(self, day_key: str, category: str) -> dict:
        return await self._request("DELETE", f"/api/entries/{_seg(day_key)}/{_seg(category)}")

    async def list_topics(self) -> list[dict]:
        payload = await self._request("GET", "/api/topics")
        return as_list(payload, "topics", "items")

    async def create_topic(self, name: str, client_id: str) -> dict:
        data = await self._request("POST", "/api/topics", json={"name": name, "clientId": client_id})
        return data.get("topic", data)

    async def add_topic_item(self, topic_id: str, payload: dict) -> dict:
        data = await self._request("POST", f"/api/topics/{_seg(topic_id)}/items", json=payload)
        return data.get("item", data)

    async def toggle_topic_item_finished(self, topic_id: str, item_id: str) -> dict:
        data = await self._request("POST", f"/api/topics/{_seg(topic_id)}/items/{_seg(item_id)}/toggle")
        return data.get("item", data)

    async def delete_topic_item(self, topic_id: str, item_id: str) -> dict:
        try:
            return await self._request("DELETE", f"/api/topics/{_seg(topic_id)}/items/{_seg(item_id)}")
        except RemoteError as e:
            # Already gone satisfies the delete
            if e.status == 404:
                logger.debug("Topic item %s/%s already absent", topic_id, item_id)
                return {"ok": True}
            raise

    async def stats_summary(self, year: str = "All") -> dict:
        return await self._request("GET", "/api/stats/summary", params={"year": year})

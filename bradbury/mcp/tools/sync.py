from dataclasses import asdict

from httpx import HTTPError

from bradbury.errors import BradburyError
from bradbury.mcp.tools.errors import error_response
from bradbury.services.sync import SyncEngine


async def upload_local(
    engine: SyncEngine,
    limit: int | None = None,
    limit_topics: int | None = None,
) -> dict:
    try:
        entries = await engine.upload_entries(limit=limit)
        curriculum = await engine.upload_curriculum(limit_topics=limit_topics)
    except BradburyError as e:
        return error_response(e)
    except HTTPError as e:
        return {"error": True, "status": None, "detail": str(e)}
    return {"entries": asdict(entries), "curriculum": asdict(curriculum)}


async def pull_latest(engine: SyncEngine) -> dict:
    try:
        result = await engine.pull()
    except BradburyError as e:
        return error_response(e)
    except HTTPError as e:
        return {"error": True, "status": None, "detail": str(e)}
    return asdict(result)


async def hydrate_from_server(engine: SyncEngine, confirm: bool = False) -> dict:
    try:
        result = await engine.hydrate(confirm=confirm)
    except BradburyError as e:
        return error_response(e)
    except HTTPError as e:
        return {"error": True, "status": None, "detail": str(e)}
    return asdict(result)

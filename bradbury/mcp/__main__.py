import asyncio
import logging
import sys

from bradbury.config import LOG_LEVEL
from bradbury.local_store import LocalStore
from bradbury.mcp.server import create_mcp_server
from bradbury.remote import RemoteClient
from bradbury.services.sync import SyncEngine

logger = logging.getLogger(__name__)


async def prepare_local_store(local: LocalStore) -> None:
    """Create the local tables, then release connections bound to this loop."""
    await local.open()
    await local.engine.dispose()


def main():
    # stdout carries the MCP protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    local = LocalStore.from_url()
    asyncio.run(prepare_local_store(local))

    remote = RemoteClient.from_config()
    engine = SyncEngine(local, remote)
    mcp = create_mcp_server(local, engine)
    logger.info("Starting bradbury MCP server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

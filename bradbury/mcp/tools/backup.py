from bradbury.errors import ConfirmationRequired, ValidationError
from bradbury.local_store import LocalStore
from bradbury.mcp.tools.errors import error_response


async def export_backup(local: LocalStore) -> dict:
    return await local.export_data()


async def import_backup(local: LocalStore, backup: str | dict, mode: str = "merge", confirm: bool = False) -> dict:
    """Restore a backup. Replacing drops every local key first, so it needs confirm."""
    if mode == "replace" and not confirm:
        return error_response(ConfirmationRequired("replace import drops all local data; pass confirm=True"))
    try:
        return await local.import_data(backup, mode=mode)
    except ValidationError as e:
        return error_response(e)


async def clear_local_data(local: LocalStore, confirm: bool = False) -> dict:
    if not confirm:
        return error_response(ConfirmationRequired("clearing drops all local data; pass confirm=True"))
    return {"deleted": await local.clear_data()}

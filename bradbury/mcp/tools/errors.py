from bradbury.errors import BradburyError, NotFound, RemoteError, SyncInProgress


def error_response(e: BradburyError) -> dict:
    """Tool-friendly error dict, shaped like a failed API response."""
    if isinstance(e, RemoteError):
        status = e.status
    elif isinstance(e, NotFound):
        status = 404
    elif isinstance(e, SyncInProgress):
        status = 409
    else:
        status = 400
    return {"error": True, "status": status, "detail": str(e)}

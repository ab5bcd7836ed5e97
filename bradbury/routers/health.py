from datetime import UTC, datetime

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"ok": True, "service": "bradbury-api", "time": datetime.now(UTC).isoformat()}

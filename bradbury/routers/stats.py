from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bradbury.auth import get_current_user
from bradbury.config import TIMEZONE
from bradbury.database import get_session
from bradbury.dates import is_day_key, reference_today
from bradbury.errors import InvalidDayKey, InvalidYear
from bradbury.models import Entry
from bradbury.schemas.stats import DayStatus, StatsReport
from bradbury.services.stats import ALL_YEARS, compute_stats, day_status

router = APIRouter(prefix="/api/stats", tags=["stats"])


async def _user_entries(session: AsyncSession, user_id: str) -> list[Entry]:
    result = await session.execute(select(Entry).where(Entry.user_id == user_id))
    return list(result.scalars().all())


@router.get("/summary", response_model=StatsReport)
async def stats_summary(
    year: str = Query(ALL_YEARS, description="4-digit year or 'All'"),
    today: str | None = Query(None, description="Override today's day key (YYYY-MM-DD)"),
    day_from: str | None = Query(None, alias="from", description="First day key counted in totals"),
    day_to: str | None = Query(None, alias="to", description="Last day key counted in totals"),
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    entries = await _user_entries(session, user_id)
    try:
        return compute_stats(
            entries,
            scope_year=year,
            today_key=today or reference_today(TIMEZONE),
            day_from=day_from,
            day_to=day_to,
        )
    except InvalidYear:
        raise HTTPException(status_code=400, detail="invalid_year")
    except InvalidDayKey:
        raise HTTPException(status_code=400, detail="invalid_day_key")


@router.get("/days/{day_key}", response_model=DayStatus)
async def stats_day(
    day_key: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    if not is_day_key(day_key):
        raise HTTPException(status_code=400, detail="invalid_day_key")
    entries = await _user_entries(session, user_id)
    return day_status(entries, day_key)

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bradbury.auth import get_current_user
from bradbury.database import get_session
from bradbury.dates import is_day_key
from bradbury.errors import InvalidCategory
from bradbury.models import Entry
from bradbury.normalize import (
    clamp_rating,
    normalize_category,
    normalize_tags,
    normalize_text,
    normalize_word_count,
)
from bradbury.schemas.entry import EntryEnvelope, EntryList, EntryUpsert

router = APIRouter(prefix="/api/entries", tags=["entries"])


def _category_or_400(raw: str):
    try:
        return normalize_category(raw)
    except InvalidCategory:
        raise HTTPException(status_code=400, detail="invalid_category")


async def _get_entry(session: AsyncSession, user_id: str, day_key: str, category: str) -> Entry | None:
    result = await session.execute(
        select(Entry).where(Entry.user_id == user_id, Entry.day_key == day_key, Entry.category == category)
    )
    return result.scalar_one_or_none()


@router.get("", response_model=EntryList)
async def list_entries(
    day_key: str | None = Query(None, alias="dayKey"),
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    min_rating: float | None = Query(None, alias="minRating"),
    max_rating: float | None = Query(None, alias="maxRating"),
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(Entry).where(Entry.user_id == user_id)
    if day_key:
        stmt = stmt.where(Entry.day_key == day_key.strip())
    if category:
        stmt = stmt.where(Entry.category == str(_category_or_400(category)))
    if min_rating is not None:
        stmt = stmt.where(Entry.rating >= min_rating)
    if max_rating is not None:
        stmt = stmt.where(Entry.rating <= max_rating)
    if search and search.strip():
        needle = search.strip()
        stmt = stmt.where(or_(
            Entry.title.icontains(needle, autoescape=True),
            Entry.author.icontains(needle, autoescape=True),
            Entry.notes.icontains(needle, autoescape=True),
        ))
    stmt = stmt.order_by(Entry.day_key.desc(), Entry.category, Entry.created_at.desc())
    entries = (await session.execute(stmt)).scalars().all()
    if tag:
        wanted = tag.strip().casefold()
        entries = [e for e in entries if any(t.casefold() == wanted for t in e.tags or [])]
    return EntryList(entries=entries)


@router.post("/upsert", response_model=EntryEnvelope)
async def upsert_entry(
    data: EntryUpsert,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    day_key = normalize_text(data.day_key)
    if not is_day_key(day_key):
        raise HTTPException(status_code=400, detail="invalid_day_key")
    category = _category_or_400(data.category)
    title = normalize_text(data.title)
    if not title:
        raise HTTPException(status_code=400, detail="missing_title")

    fields = {
        "title": title,
        "author": normalize_text(data.author),
        "url": normalize_text(data.url),
        "notes": normalize_text(data.notes),
        "tags": normalize_tags(data.tags),
        "rating": clamp_rating(data.rating),
        "word_count": normalize_word_count(data.word_count),
    }

    entry = await _get_entry(session, user_id, day_key, str(category))
    if entry is None:
        entry = Entry(user_id=user_id, day_key=day_key, category=str(category), **fields)
        session.add(entry)
    else:
        for key, value in fields.items():
            setattr(entry, key, value)
    await session.commit()
    await session.refresh(entry)
    return EntryEnvelope(entry=entry)


@router.delete("/{day_key}/{category}", status_code=204)
async def delete_entry(
    day_key: str,
    category: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    entry = await _get_entry(session, user_id, day_key.strip(), str(_category_or_400(category)))
    # Already gone is fine
    if entry is not None:
        await session.delete(entry)
        await session.commit()

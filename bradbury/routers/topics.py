from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bradbury.auth import get_current_user
from bradbury.database import get_session
from bradbury.errors import InvalidCategory
from bradbury.id import make_client_id
from bradbury.models import Topic, TopicItem
from bradbury.normalize import normalize_category, normalize_tags, normalize_text
from bradbury.schemas.records import sort_topic_items
from bradbury.schemas.topic import (
    TopicCreate,
    TopicEnvelope,
    TopicItemEnvelope,
    TopicItemResponse,
    TopicItemUpsert,
    TopicList,
    TopicResponse,
)

router = APIRouter(prefix="/api/topics", tags=["topics"])


def _item_out(item: TopicItem) -> TopicItemResponse:
    return TopicItemResponse(
        id=item.client_id,
        client_id=item.client_id,
        title=item.title,
        url=item.url or "",
        category=item.category,
        author=item.author or "",
        word_count=item.word_count,
        notes=item.notes or "",
        tags=item.tags or [],
        finished=item.finished,
        finished_at=item.finished_at,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _topic_out(topic: Topic) -> TopicResponse:
    return TopicResponse(
        id=topic.client_id,
        client_id=topic.client_id,
        name=topic.name,
        created_at=topic.created_at,
        updated_at=topic.updated_at,
        items=sort_topic_items([_item_out(it) for it in topic.items]),
    )


async def _get_topic(session: AsyncSession, user_id: str, topic_id: str) -> Topic | None:
    result = await session.execute(
        select(Topic)
        .where(Topic.user_id == user_id, Topic.client_id == topic_id.strip())
        .options(selectinload(Topic.items))
    )
    return result.scalar_one_or_none()


async def _get_topic_or_404(session: AsyncSession, user_id: str, topic_id: str) -> Topic:
    topic = await _get_topic(session, user_id, topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="topic_not_found")
    return topic


@router.get("", response_model=TopicList)
async def list_topics(
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(Topic)
        .where(Topic.user_id == user_id)
        .options(selectinload(Topic.items))
        .order_by(Topic.updated_at.desc())
    )
    return TopicList(topics=[_topic_out(t) for t in result.scalars().all()])


@router.post("", response_model=TopicEnvelope)
async def create_topic(
    data: TopicCreate,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    name = normalize_text(data.name)
    if not name:
        raise HTTPException(status_code=400, detail="missing_name")
    # Web callers may omit the client id; one is assigned so the topic can sync
    client_id = normalize_text(data.client_id) or make_client_id("t")

    topic = await _get_topic(session, user_id, client_id)
    if topic is None:
        topic = Topic(user_id=user_id, client_id=client_id, name=name, items=[])
        session.add(topic)
    else:
        topic.name = name
    await session.commit()
    topic = await _get_topic_or_404(session, user_id, client_id)
    return TopicEnvelope(topic=_topic_out(topic))


@router.get("/{topic_id}", response_model=TopicEnvelope)
async def get_topic(
    topic_id: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    topic = await _get_topic_or_404(session, user_id, topic_id)
    return TopicEnvelope(topic=_topic_out(topic))


@router.delete("/{topic_id}", status_code=204)
async def delete_topic(
    topic_id: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    topic = await _get_topic(session, user_id, topic_id)
    if topic is not None:
        await session.delete(topic)
        await session.commit()


@router.post("/{topic_id}/items", response_model=TopicItemEnvelope)
async def add_topic_item(
    topic_id: str,
    data: TopicItemUpsert,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    topic = await _get_topic_or_404(session, user_id, topic_id)
    try:
        category = normalize_category(data.category)
    except InvalidCategory:
        raise HTTPException(status_code=400, detail="invalid_category")
    title = normalize_text(data.title)
    if not title:
        raise HTTPException(status_code=400, detail="missing_title")

    client_id = normalize_text(data.client_id) or make_client_id("i")
    finished = bool(data.finished)
    fields = {
        "title": title,
        "url": normalize_text(data.url),
        "category": str(category),
        "author": normalize_text(data.author),
        "word_count": data.word_count,
        "notes": normalize_text(data.notes),
        "tags": normalize_tags(data.tags),
    }

    item = next((it for it in topic.items if it.client_id == client_id), None)
    if item is None:
        item = TopicItem(
            topic_id=topic.id,
            client_id=client_id,
            finished=finished,
            finished_at=datetime.now(UTC) if finished else None,
            **fields,
        )
        session.add(item)
    else:
        for key, value in fields.items():
            setattr(item, key, value)
        # Keep the original finish time while the item stays finished
        if finished != item.finished:
            item.finished = finished
            item.finished_at = datetime.now(UTC) if finished else None
    await session.commit()
    await session.refresh(item)
    return TopicItemEnvelope(item=_item_out(item))


@router.post("/{topic_id}/items/{item_id}/toggle", response_model=TopicItemEnvelope)
async def toggle_topic_item(
    topic_id: str,
    item_id: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    topic = await _get_topic_or_404(session, user_id, topic_id)
    item = next((it for it in topic.items if it.client_id == item_id.strip()), None)
    if item is None:
        raise HTTPException(status_code=404, detail="item_not_found")

    item.finished = not item.finished
    item.finished_at = datetime.now(UTC) if item.finished else None
    await session.commit()
    await session.refresh(item)
    return TopicItemEnvelope(item=_item_out(item))


@router.delete("/{topic_id}/items/{item_id}", status_code=204)
async def delete_topic_item(
    topic_id: str,
    item_id: str,
    user_id: str = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    topic = await _get_topic(session, user_id, topic_id)
    if topic is None:
        return
    item = next((it for it in topic.items if it.client_id == item_id.strip()), None)
    if item is not None:
        await session.delete(item)
        await session.commit()

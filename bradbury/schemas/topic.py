from datetime import datetime

from pydantic import Field

from bradbury.schemas.records import RecordModel, TopicItemRecord


class TopicCreate(RecordModel):
    name: str = Field(min_length=1)
    client_id: str | None = None


class TopicItemUpsert(RecordModel):
    title: str = Field(min_length=1)
    url: str | None = None
    category: str
    author: str | None = None
    word_count: int | None = Field(None, ge=0)
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    client_id: str | None = None
    # Clients send the finished state itself rather than toggling it
    finished: bool | None = None


class TopicItemResponse(TopicItemRecord):
    client_id: str


class TopicResponse(RecordModel):
    id: str
    client_id: str
    name: str
    created_at: datetime
    updated_at: datetime | None = None
    items: list[TopicItemResponse] = Field(default_factory=list)


class TopicEnvelope(RecordModel):
    topic: TopicResponse


class TopicList(RecordModel):
    topics: list[TopicResponse]


class TopicItemEnvelope(RecordModel):
    item: TopicItemResponse

from datetime import datetime

from pydantic import ConfigDict, Field

from bradbury.schemas.records import RecordModel


class EntryUpsert(RecordModel):
    day_key: str
    category: str
    title: str
    author: str | None = None
    url: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    rating: int | str | None = None
    word_count: int | str | None = None


class EntryResponse(RecordModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    day_key: str
    category: str
    title: str
    author: str
    url: str
    notes: str
    tags: list[str]
    rating: int | None
    word_count: int | None
    created_at: datetime
    updated_at: datetime


class EntryEnvelope(RecordModel):
    entry: EntryResponse


class EntryList(RecordModel):
    entries: list[EntryResponse]

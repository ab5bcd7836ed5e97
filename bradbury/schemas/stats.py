from pydantic import Field

from bradbury.schemas.records import RecordModel


class Totals(RecordModel):
    count: int = 0
    total_words: int = 0
    avg_rating: float | None = None
    rated_count: int = 0


class TypeAverages(Totals):
    avg_words: float | None = None
    # Entries that carry a word count
    word_count: int = 0


class ChallengeStats(RecordModel):
    complete_day_count: int = 0
    current_streak: int = 0
    today_key: str


class Badge(RecordModel):
    key: str
    days: int
    label: str
    description: str


class StatsReport(RecordModel):
    scope_year: str
    day_from: str | None = None
    day_to: str | None = None
    available_years: list[str] = Field(default_factory=list)
    counts_by_type: dict[str, int] = Field(default_factory=dict)
    totals: Totals
    per_type_averages: dict[str, TypeAverages] = Field(default_factory=dict)
    challenge: ChallengeStats
    badges: list[Badge] = Field(default_factory=list)


class DayStatus(RecordModel):
    day_key: str
    status: str
    categories: list[str] = Field(default_factory=list)
